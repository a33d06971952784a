"""Per-schema conversion of bundle units into host representations.

Every schema has one pure conversion function per unit kind, selected from a
dispatch table. Conversions never touch the filesystem beyond reading the
unit's own files, and the same unit converted twice yields byte-identical
output.

Results are either:

- ``HostArtifact``: files to place under the target root (directory targets)
- ``DocumentSection``: a chunk of the single-document target, assembled by
  :func:`render_single_document`
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from agentic_skills.bundle.frontmatter import fold_description, render_frontmatter
from agentic_skills.bundle.models import AgentUnit, SkillUnit
from agentic_skills.exceptions import SchemaViolation
from agentic_skills.targets.schema import DESCRIPTION_LIMIT, TargetSchema

# OpenCode tool keys, in the order they are emitted
OPENCODE_TOOLS = (
    "bash",
    "edit",
    "glob",
    "grep",
    "list",
    "patch",
    "read",
    "todoread",
    "todowrite",
    "webfetch",
    "write",
)

# Claude Code tool names (lowercased) -> OpenCode tool keys
_OPENCODE_TOOL_ALIASES = {
    "bash": "bash",
    "edit": "edit",
    "multiedit": "edit",
    "notebookedit": "edit",
    "glob": "glob",
    "grep": "grep",
    "ls": "list",
    "list": "list",
    "patch": "patch",
    "read": "read",
    "notebookread": "read",
    "todoread": "todoread",
    "todowrite": "todowrite",
    "webfetch": "webfetch",
    "websearch": "webfetch",
    "write": "write",
}


@dataclass(frozen=True)
class HostArtifact:
    """Files produced for one unit under a directory-based target.

    Attributes:
        path: Root-relative artifact path recorded in the manifest
            (``skills/<name>`` or ``agents/<name>.md``)
        files: Root-relative file path -> content
    """

    path: str
    files: dict[str, bytes] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentSection:
    """One unit's section of the single-document target."""

    kind: str
    name: str
    text: str


ConversionResult = HostArtifact | DocumentSection


def _check_description_limit(unit_name: str, description: str) -> str:
    """Fold a description and enforce the single-line ceiling.

    Raises:
        SchemaViolation: If the folded description exceeds DESCRIPTION_LIMIT
    """
    folded = fold_description(description)
    if len(folded) > DESCRIPTION_LIMIT:
        raise SchemaViolation(
            unit_name,
            f"description is {len(folded)} characters after folding "
            f"(limit {DESCRIPTION_LIMIT})",
        )
    return folded


def _render_tools(tools: list[str]) -> str | None:
    return ", ".join(tools) if tools else None


def _extra_fields(unit: AgentUnit, reserved: set[str]) -> dict:
    return {key: value for key, value in unit.extra.items() if key not in reserved}


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


def _skill_directory_copy(unit: SkillUnit) -> HostArtifact:
    """Copy a skill directory verbatim under ``skills/<name>/``."""
    base = f"skills/{unit.name}"
    files = {f"{base}/{relative}": unit.read_file(relative) for relative in unit.files}
    return HostArtifact(path=base, files=files)


def _codex_skill(unit: SkillUnit) -> HostArtifact:
    _check_description_limit(unit.name, unit.description)
    return _skill_directory_copy(unit)


def _skill_section(unit: SkillUnit) -> DocumentSection:
    return DocumentSection(kind="Skill", name=unit.name, text=unit.document)


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


def _agent_artifact(unit: AgentUnit, text: str) -> HostArtifact:
    path = f"agents/{unit.file_name}"
    return HostArtifact(path=path, files={path: text.encode("utf-8")})


def _claude_agent(unit: AgentUnit) -> HostArtifact:
    fields = {
        "name": unit.name,
        "description": unit.description,
        "tools": _render_tools(unit.tools),
        "model": unit.model,
    }
    fields.update(_extra_fields(unit, set(fields)))
    return _agent_artifact(unit, render_frontmatter(fields, unit.body))


def opencode_tool_map(tools: list[str]) -> dict[str, bool]:
    """Synthesize an OpenCode tool map from a Claude-style tool list.

    An empty source list grants every tool (Claude agents without ``tools``
    inherit all of them). Unknown tools are kept under their lowercased name.

    Examples:
        >>> opencode_tool_map(["Read", "Grep"])["read"]
        True
        >>> opencode_tool_map(["Read", "Grep"])["bash"]
        False
    """
    if not tools:
        return {key: True for key in OPENCODE_TOOLS}

    granted = set()
    for tool in tools:
        # "Bash(git:*)" -> "bash"
        key = tool.split("(", 1)[0].strip().lower()
        if key:
            granted.add(_OPENCODE_TOOL_ALIASES.get(key, key))

    keys = sorted(set(OPENCODE_TOOLS) | granted)
    return {key: key in granted for key in keys}


def _opencode_agent(unit: AgentUnit) -> HostArtifact:
    fields = {
        "description": fold_description(unit.description),
        "mode": "subagent",
        # OpenCode only understands provider/model identifiers
        "model": unit.model if unit.model and "/" in unit.model else None,
        "tools": opencode_tool_map(unit.tools),
    }
    return _agent_artifact(unit, render_frontmatter(fields, unit.body))


def _codex_agent(unit: AgentUnit) -> HostArtifact:
    fields = {
        "name": unit.name,
        "description": _check_description_limit(unit.name, unit.description),
        "tools": _render_tools(unit.tools),
        "model": unit.model,
    }
    fields.update(_extra_fields(unit, set(fields)))
    return _agent_artifact(unit, render_frontmatter(fields, unit.body))


def _agent_section(unit: AgentUnit) -> DocumentSection:
    artifact = _claude_agent(unit)
    text = artifact.files[artifact.path].decode("utf-8")
    return DocumentSection(kind="Agent", name=unit.name, text=text)


SKILL_CONVERTERS: dict[TargetSchema, Callable[[SkillUnit], ConversionResult]] = {
    TargetSchema.CLAUDE: _skill_directory_copy,
    TargetSchema.OPENCODE: _skill_directory_copy,
    TargetSchema.CODEX: _codex_skill,
    TargetSchema.CODEX_MD: _skill_section,
}

AGENT_CONVERTERS: dict[TargetSchema, Callable[[AgentUnit], ConversionResult]] = {
    TargetSchema.CLAUDE: _claude_agent,
    TargetSchema.OPENCODE: _opencode_agent,
    TargetSchema.CODEX: _codex_agent,
    TargetSchema.CODEX_MD: _agent_section,
}


def convert(unit: SkillUnit | AgentUnit, schema: TargetSchema) -> ConversionResult:
    """Convert one bundle unit to its host representation.

    Args:
        unit: Skill or agent from the source bundle
        schema: Target host schema

    Returns:
        HostArtifact for directory targets, DocumentSection for the
        single-document target

    Raises:
        SchemaViolation: If the unit cannot be represented in the schema
    """
    if isinstance(unit, SkillUnit):
        return SKILL_CONVERTERS[schema](unit)
    return AGENT_CONVERTERS[schema](unit)


def roster_line(skill_count: int, agent_count: int) -> str:
    """Summary line stating exact unit counts for the single document."""
    return f"> {skill_count} expert-level domain skills + {agent_count} specialized agents."


def render_single_document(sections: list[DocumentSection]) -> bytes:
    """Concatenate sections into the single-document target.

    The roster line is computed from the sections actually rendered, so it
    always matches the live bundle content.
    """
    skill_count = sum(1 for section in sections if section.kind == "Skill")
    agent_count = sum(1 for section in sections if section.kind == "Agent")

    parts = ["# Agentic Skills", "", roster_line(skill_count, agent_count), ""]
    for section in sections:
        heading = f"## {section.kind}: {section.name}"
        parts.extend(["---", "", heading, "", section.text.rstrip("\n"), ""])

    return "\n".join(parts).encode("utf-8")
