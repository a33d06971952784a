"""Unit tests for bundle source resolution."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from git import GitCommandError

from agentic_skills.exceptions import InstallAbortedError, SourceFetchError
from agentic_skills.installer import InstallManager, is_git_url, resolve_source
from agentic_skills.manifest import ManifestStore
from agentic_skills.targets import TargetSchema
from tests.helpers.builders import build_bundle, write_skill


@pytest.mark.unit
@pytest.mark.parametrize(
    "source,expected",
    [
        ("https://github.com/example/agentic-skills", True),
        ("git@github.com:example/agentic-skills.git", True),
        ("ssh://git@example.com/bundle", True),
        ("file:///srv/bundle", True),
        ("../bundle.git", True),
        ("./agentic-skills", False),
        ("/opt/bundles/skills", False),
    ],
)
def test_is_git_url(source, expected):
    """Should tell remote repositories from local directories."""
    assert is_git_url(source) is expected


@pytest.mark.unit
class TestResolveSource:
    """Test resolve_source()."""

    def test_local_directory_is_used_in_place(self, bundle_dir):
        """Should yield a local directory without copying it."""
        with resolve_source(str(bundle_dir)) as resolved:
            assert resolved == bundle_dir
        assert bundle_dir.exists()

    def test_missing_local_directory(self, tmp_path):
        """Should raise SourceFetchError for a missing directory."""
        with pytest.raises(SourceFetchError, match="not found"):
            with resolve_source(str(tmp_path / "nope")):
                pass

    @patch("agentic_skills.installer.source.Repo")
    def test_clone_and_cleanup(self, mock_repo_class):
        """Should shallow-clone the ref and remove the clone afterwards."""
        mock_repo = MagicMock()

        def fake_clone(url, to_path, **kwargs):
            build_bundle(Path(to_path))
            return mock_repo

        mock_repo_class.clone_from.side_effect = fake_clone

        with resolve_source("https://example.com/bundle.git", "v2") as resolved:
            assert (resolved / "skills" / "git-workflow" / "SKILL.md").is_file()
            clone_root = resolved.parent

        _, kwargs = mock_repo_class.clone_from.call_args
        assert kwargs == {"depth": 1, "branch": "v2"}
        mock_repo.close.assert_called_once()
        assert not clone_root.exists()

    @patch("agentic_skills.installer.source.Repo")
    def test_default_ref(self, mock_repo_class):
        """Should clone the main branch when no ref is given."""
        mock_repo_class.clone_from.side_effect = lambda url, to_path, **kw: (
            build_bundle(Path(to_path)) and MagicMock()
        )

        with resolve_source("git@example.com:bundle.git"):
            pass

        assert mock_repo_class.clone_from.call_args.kwargs["branch"] == "main"

    @patch("agentic_skills.installer.source.Repo")
    def test_clone_failure(self, mock_repo_class):
        """Should wrap git errors and leave no temp directory behind."""
        created = []

        def failing_clone(url, to_path, **kwargs):
            created.append(Path(to_path).parent)
            raise GitCommandError("clone", 128)

        mock_repo_class.clone_from.side_effect = failing_clone

        with pytest.raises(SourceFetchError, match="Could not clone"):
            with resolve_source("https://example.com/missing.git"):
                pass

        assert created and not created[0].exists()


@pytest.mark.unit
class TestSelfUpdate:
    """Test InstallManager.self_update()."""

    def test_self_update_from_local_directory(self, manager, project_dir, tmp_path):
        """Should apply an alternate bundle and record it as the source."""
        root = project_dir / ".codex"
        manager.install(TargetSchema.CODEX, root)
        alternate = build_bundle(tmp_path / "alternate")
        write_skill(alternate, "api-design")

        report = manager.self_update(str(alternate), root, yes=True)

        manifest = ManifestStore(root).read()
        assert "api-design" in manifest.skills
        assert manifest.source == str(alternate)
        assert "skills/api-design/SKILL.md" in report.written

    def test_self_update_declined(self, bundle_dir, project_dir, tmp_path):
        """Should stop before fetching when the user declines."""
        root = project_dir / ".codex"
        InstallManager(bundle_dir=bundle_dir).install(TargetSchema.CODEX, root)
        declining = InstallManager(bundle_dir=bundle_dir, confirm=lambda message, default: False)

        with pytest.raises(InstallAbortedError):
            declining.self_update(str(tmp_path / "missing"), root)
