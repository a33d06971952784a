"""Shared test fixtures for all tests.

This file imports and re-exports fixtures from the fixtures/ module so they
are discovered by pytest for every test directory.
"""

import pytest

from tests.fixtures.bundle import bundle_dir, manager, project_dir, source_bundle  # noqa: F401


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep settings and logs out of the real home directory."""
    home = tmp_path / "agentic-home"
    monkeypatch.setenv("AGENTIC_SKILLS_HOME", str(home))
    for name in ("AGENTIC_SKILLS_SOURCE", "AGENTIC_SKILLS_LOG_LEVEL", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return home
