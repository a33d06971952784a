"""Test helpers and utilities.

This module provides shared utilities for testing:
- builders: Test data builders for bundles, skills and agents
"""

from tests.helpers.builders import build_bundle, write_agent, write_skill

__all__ = [
    "build_bundle",
    "write_agent",
    "write_skill",
]
