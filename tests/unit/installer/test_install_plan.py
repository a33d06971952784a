"""Unit tests for install planning."""

import json

import pytest

from agentic_skills.bundle import load_bundle
from agentic_skills.exceptions import InstallValidationError, InvalidExistingDocument
from agentic_skills.hooks import bridge_source
from agentic_skills.installer import build_plan
from agentic_skills.manifest import Scope
from agentic_skills.targets import TargetSchema
from tests.helpers.builders import write_agent


@pytest.mark.unit
class TestBuildPlan:
    """Test build_plan()."""

    def test_full_claude_plan(self, source_bundle, project_dir):
        """Should plan skills, agents, the bridge and the settings fragment."""
        root = project_dir / ".claude"

        plan = build_plan(source_bundle, TargetSchema.CLAUDE, Scope.FULL, root)

        assert plan.skills == ["docker-production", "git-workflow"]
        assert plan.agents == ["pr-reviewer", "software-architect"]
        assert plan.hooks is True
        assert plan.plugin_files == ["hooks/agentic_skills_hooks.py"]
        assert plan.files["hooks/agentic_skills_hooks.py"] == bridge_source()
        assert "skills/docker-production/references/multi-stage.md" in plan.files
        assert "agents/pr-reviewer.md" in plan.files
        assert plan.settings_path == root / "settings.json"
        assert plan.settings_changed is True
        assert "PreToolUse" in plan.settings["hooks"]

    def test_skills_only(self, source_bundle, project_dir):
        """Should deploy skills only, without agents, hooks or settings."""
        plan = build_plan(
            source_bundle, TargetSchema.CLAUDE, Scope.SKILLS_ONLY, project_dir / ".claude"
        )

        assert plan.skills == ["docker-production", "git-workflow"]
        assert plan.agents == []
        assert plan.hooks is False
        assert plan.settings is None
        assert not any(path.startswith(("agents/", "hooks/")) for path in plan.files)

    def test_hooks_only(self, source_bundle, project_dir):
        """Should deploy only the bridge for plugin hosts."""
        plan = build_plan(
            source_bundle, TargetSchema.OPENCODE, Scope.HOOKS_ONLY, project_dir / ".opencode"
        )

        assert plan.skills == []
        assert plan.agents == []
        assert plan.hooks is True
        assert list(plan.files) == ["plugins/agentic_skills_hooks.py"]
        assert plan.settings_path is None
        assert plan.settings is None

    @pytest.mark.parametrize("schema", [TargetSchema.CODEX, TargetSchema.CODEX_MD])
    def test_hooks_only_without_hook_support_raises(self, source_bundle, project_dir, schema):
        """Should reject hooks-only for hosts without hook support."""
        with pytest.raises(InstallValidationError, match="no hook support"):
            build_plan(source_bundle, schema, Scope.HOOKS_ONLY, project_dir)

    def test_full_codex_has_no_hooks(self, source_bundle, project_dir):
        """Should record hooks=false on hosts without hook support."""
        plan = build_plan(source_bundle, TargetSchema.CODEX, Scope.FULL, project_dir / ".codex")

        assert plan.hooks is False
        assert plan.plugin_files == []
        assert plan.settings_path is None

    def test_codex_md_single_document(self, source_bundle, project_dir):
        """Should render every unit into codex.md."""
        plan = build_plan(source_bundle, TargetSchema.CODEX_MD, Scope.FULL, project_dir)

        assert list(plan.files) == ["codex.md"]
        text = plan.files["codex.md"].decode("utf-8")
        assert "> 2 expert-level domain skills + 2 specialized agents." in text

    def test_schema_violation_skips_only_that_unit(self, bundle_dir, project_dir):
        """Should skip a violating unit and keep converting the rest."""
        write_agent(bundle_dir, "verbose", description="z" * 1100)
        bundle = load_bundle(bundle_dir)

        plan = build_plan(bundle, TargetSchema.CODEX, Scope.FULL, project_dir / ".codex")

        assert "verbose" not in plan.agents
        assert plan.agents == ["pr-reviewer", "software-architect"]
        assert [v.unit for v in plan.violations] == ["verbose"]
        assert "agents/verbose.md" not in plan.files

    def test_invalid_settings_fail_during_planning(self, source_bundle, project_dir):
        """Should refuse to plan over an unparseable settings document."""
        root = project_dir / ".claude"
        root.mkdir()
        (root / "settings.json").write_text("{ not json")

        with pytest.raises(InvalidExistingDocument):
            build_plan(source_bundle, TargetSchema.CLAUDE, Scope.FULL, root)

    def test_existing_settings_are_merged(self, source_bundle, project_dir):
        """Should merge the fragment into existing user settings."""
        root = project_dir / ".claude"
        root.mkdir()
        settings = {"permissions": {"allow": ["Bash(echo:*)"]}}
        (root / "settings.json").write_text(json.dumps(settings))

        plan = build_plan(source_bundle, TargetSchema.CLAUDE, Scope.HOOKS_ONLY, root)

        assert plan.settings["permissions"] == {"allow": ["Bash(echo:*)"]}
        assert "hooks" in plan.settings

    def test_dropping_hooks_unmerges_settings(self, source_bundle, project_dir):
        """Should plan removal of the fragment when a re-install drops hooks."""
        root = project_dir / ".claude"
        full = build_plan(source_bundle, TargetSchema.CLAUDE, Scope.FULL, root)
        root.mkdir()
        merged = dict(full.settings, model="opus")
        (root / "settings.json").write_text(json.dumps(merged))

        plan = build_plan(
            source_bundle, TargetSchema.CLAUDE, Scope.SKILLS_ONLY, root, previous_hooks=True
        )

        assert plan.settings == {"model": "opus"}
        assert plan.settings_changed is True


@pytest.mark.unit
class TestPlanInspection:
    """Test InstallPlan change and conflict detection."""

    def test_changed_files(self, source_bundle, project_dir):
        """Should report only files whose bytes differ on disk."""
        root = project_dir / ".codex"
        plan = build_plan(source_bundle, TargetSchema.CODEX, Scope.SKILLS_ONLY, root)
        target = root / "skills/git-workflow/SKILL.md"
        target.parent.mkdir(parents=True)
        target.write_bytes(plan.files["skills/git-workflow/SKILL.md"])

        changed = plan.changed_files()

        assert "skills/git-workflow/SKILL.md" not in changed
        assert "skills/docker-production/SKILL.md" in changed

    def test_conflicts_ignore_owned_and_identical_files(self, source_bundle, project_dir):
        """Should flag only unrecorded files with different content."""
        root = project_dir / ".codex"
        plan = build_plan(source_bundle, TargetSchema.CODEX, Scope.SKILLS_ONLY, root)
        for relative in ("skills/git-workflow/SKILL.md", "skills/docker-production/SKILL.md"):
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("user content")

        assert plan.conflicts(owned=[]) == [
            "skills/docker-production/SKILL.md",
            "skills/git-workflow/SKILL.md",
        ]
        assert plan.conflicts(owned=["skills/git-workflow"]) == [
            "skills/docker-production/SKILL.md"
        ]
