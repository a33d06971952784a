"""Unit tests for per-schema unit conversion."""

import pytest
import yaml

from agentic_skills.bundle.frontmatter import extract_yaml_frontmatter
from agentic_skills.bundle.loader import load_agent, load_skill
from agentic_skills.exceptions import SchemaViolation
from agentic_skills.targets import (
    DocumentSection,
    HostArtifact,
    TargetSchema,
    convert,
    render_single_document,
    roster_line,
)
from agentic_skills.targets.convert import OPENCODE_TOOLS, opencode_tool_map
from tests.helpers.builders import write_agent, write_skill


def _agent_fields(artifact: HostArtifact) -> dict:
    fields, _ = extract_yaml_frontmatter(artifact.files[artifact.path].decode("utf-8"))
    return fields


@pytest.mark.unit
class TestSkillConversion:
    """Test skill conversion for every schema."""

    @pytest.mark.parametrize(
        "schema", [TargetSchema.CLAUDE, TargetSchema.OPENCODE, TargetSchema.CODEX]
    )
    def test_directory_targets_copy_verbatim(self, source_bundle, schema):
        """Should copy every skill file byte-for-byte under skills/<name>/."""
        skill = source_bundle.skills[0]

        artifact = convert(skill, schema)

        assert isinstance(artifact, HostArtifact)
        assert artifact.path == "skills/docker-production"
        assert sorted(artifact.files) == [
            "skills/docker-production/SKILL.md",
            "skills/docker-production/references/multi-stage.md",
        ]
        assert artifact.files["skills/docker-production/SKILL.md"] == skill.read_file("SKILL.md")

    def test_single_document_section(self, source_bundle):
        """Should turn a skill into a document section holding SKILL.md."""
        skill = source_bundle.skills[0]

        section = convert(skill, TargetSchema.CODEX_MD)

        assert section == DocumentSection(kind="Skill", name=skill.name, text=skill.document)

    def test_codex_rejects_long_skill_description(self, tmp_path):
        """Should enforce the description ceiling on skills for codex."""
        skill = load_skill(write_skill(tmp_path, "wordy", description="x" * 1025))

        with pytest.raises(SchemaViolation) as exc_info:
            convert(skill, TargetSchema.CODEX)

        assert exc_info.value.unit == "wordy"
        assert "1025" in exc_info.value.constraint

    def test_claude_accepts_long_skill_description(self, tmp_path):
        """Should not apply the ceiling to schemas without it."""
        skill = load_skill(write_skill(tmp_path, "wordy", description="x" * 2000))
        assert isinstance(convert(skill, TargetSchema.CLAUDE), HostArtifact)


@pytest.mark.unit
class TestAgentConversion:
    """Test agent front matter synthesis."""

    def test_claude_fields(self, source_bundle):
        """Should emit common fields, comma-joined tools and extra keys."""
        reviewer = source_bundle.agents[0]

        artifact = convert(reviewer, TargetSchema.CLAUDE)

        assert artifact.path == "agents/pr-reviewer.md"
        assert _agent_fields(artifact) == {
            "name": "pr-reviewer",
            "description": "pr-reviewer agent",
            "tools": "Read, Bash(git diff:*)",
            "model": "anthropic/claude-sonnet-4",
            "color": "green",
        }

    def test_claude_keeps_body(self, source_bundle):
        """Should keep the markdown body after the front matter."""
        artifact = convert(source_bundle.agents[1], TargetSchema.CLAUDE)
        text = artifact.files[artifact.path].decode("utf-8")
        assert text.endswith("\n\nYou are a helpful agent.\n")

    def test_opencode_mode_and_tool_map(self, source_bundle):
        """Should add mode: subagent and a full boolean tool map."""
        architect = source_bundle.agents[1]

        fields = _agent_fields(convert(architect, TargetSchema.OPENCODE))

        assert fields["mode"] == "subagent"
        assert "name" not in fields
        assert fields["tools"]["read"] is True
        assert fields["tools"]["grep"] is True
        assert fields["tools"]["glob"] is True
        assert fields["tools"]["bash"] is False
        assert list(fields["tools"]) == sorted(fields["tools"])

    def test_opencode_drops_alias_model(self, source_bundle):
        """Should keep only provider/model identifiers."""
        reviewer, architect = source_bundle.agents

        assert _agent_fields(convert(reviewer, TargetSchema.OPENCODE))["model"] == (
            "anthropic/claude-sonnet-4"
        )
        assert "model" not in _agent_fields(convert(architect, TargetSchema.OPENCODE))

    def test_codex_folds_description(self, tmp_path):
        """Should fold a multi-line description to a single line."""
        agent = load_agent(write_agent(tmp_path, "folded", description="Line one.\n  Line two."))

        fields = _agent_fields(convert(agent, TargetSchema.CODEX))

        assert fields["description"] == "Line one. Line two."

    def test_codex_description_at_limit_is_accepted(self, tmp_path):
        """Should accept exactly 1024 characters after folding."""
        agent = load_agent(write_agent(tmp_path, "limit", description="y" * 1024))
        assert isinstance(convert(agent, TargetSchema.CODEX), HostArtifact)

    def test_codex_description_over_limit_raises(self, tmp_path):
        """Should reject descriptions longer than 1024 characters after folding."""
        agent = load_agent(write_agent(tmp_path, "toolong", description="y " * 600))

        with pytest.raises(SchemaViolation, match="toolong"):
            convert(agent, TargetSchema.CODEX)

    def test_single_document_agent_section(self, source_bundle):
        """Should embed the Claude rendering of the agent."""
        section = convert(source_bundle.agents[0], TargetSchema.CODEX_MD)

        assert section.kind == "Agent"
        assert "name: pr-reviewer" in section.text

    @pytest.mark.parametrize("schema", list(TargetSchema))
    def test_conversion_is_deterministic(self, source_bundle, schema):
        """Should produce identical output when converting twice."""
        for unit in source_bundle.skills + source_bundle.agents:
            assert convert(unit, schema) == convert(unit, schema)


@pytest.mark.unit
class TestOpencodeToolMap:
    """Test opencode_tool_map()."""

    def test_empty_list_grants_everything(self):
        """Should grant every tool when the source lists none."""
        assert opencode_tool_map([]) == {key: True for key in OPENCODE_TOOLS}

    def test_aliases_and_patterns(self):
        """Should map Claude tool names and strip argument patterns."""
        tools = opencode_tool_map(["MultiEdit", "Bash(git:*)", "WebSearch"])

        assert tools["edit"] is True
        assert tools["bash"] is True
        assert tools["webfetch"] is True
        assert tools["write"] is False

    def test_unknown_tools_are_kept(self):
        """Should keep unknown tools under their lowercased name."""
        tools = opencode_tool_map(["Read", "CustomTool"])
        assert tools["customtool"] is True


@pytest.mark.unit
class TestSingleDocument:
    """Test render_single_document()."""

    def test_roster_counts_rendered_units(self, source_bundle):
        """Should state exact counts of the sections actually rendered."""
        sections = [convert(u, TargetSchema.CODEX_MD) for u in source_bundle.skills]
        sections.append(convert(source_bundle.agents[0], TargetSchema.CODEX_MD))

        text = render_single_document(sections).decode("utf-8")

        assert roster_line(2, 1) in text
        assert text.count("## Skill: ") == 2
        assert text.count("## Agent: ") == 1

    def test_layout(self):
        """Should separate sections with rules and headings."""
        text = render_single_document([DocumentSection("Skill", "a", "Body A\n")]).decode("utf-8")

        assert text == (
            "# Agentic Skills\n\n"
            "> 1 expert-level domain skills + 0 specialized agents.\n\n"
            "---\n\n## Skill: a\n\nBody A\n"
        )

    def test_empty_document(self):
        """Should report zero units when nothing is rendered."""
        text = render_single_document([]).decode("utf-8")
        assert "> 0 expert-level domain skills + 0 specialized agents." in text


@pytest.mark.unit
def test_opencode_front_matter_is_valid_yaml(source_bundle):
    """Should render a YAML mapping for the tools map."""
    artifact = convert(source_bundle.agents[0], TargetSchema.OPENCODE)
    header = artifact.files[artifact.path].decode("utf-8").split("---\n")[1]

    assert isinstance(yaml.safe_load(header)["tools"], dict)
