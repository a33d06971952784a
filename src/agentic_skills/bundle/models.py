"""Pydantic models for bundle units.

A bundle holds two kinds of units:

- ``SkillUnit``: a directory with a ``SKILL.md`` and any supporting files,
  copied verbatim into directory-based hosts.
- ``AgentUnit``: a single markdown file whose front matter (description,
  model, tools) is re-synthesized per host schema.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from agentic_skills.bundle.security import sanitize_unit_name


class SkillUnit(BaseModel):
    """A skill directory from the source bundle.

    Fields:
        name: Directory name (used as the host directory name)
        source_directory: Absolute path of the skill directory in the bundle
        files: Sorted POSIX paths of every file, relative to source_directory
        description: ``description`` from SKILL.md front matter
        document: Full SKILL.md text (used by the single-document target)

    Example:
        >>> unit = SkillUnit(
        ...     name="docker-production",
        ...     source_directory=Path("/bundle/skills/docker-production"),
        ...     files=["SKILL.md"],
        ...     description="Harden Docker images",
        ... )
    """

    name: str
    source_directory: Path
    files: list[str] = Field(default_factory=list)
    description: str = ""
    document: str = ""

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the name is usable as a path component."""
        return sanitize_unit_name(v)

    def read_file(self, relative_path: str) -> bytes:
        """Read one of the unit's files from the bundle."""
        return (self.source_directory / relative_path).read_bytes()


class AgentUnit(BaseModel):
    """An agent definition from the source bundle.

    Fields:
        name: File stem (``software-architect`` for ``software-architect.md``)
        description: Agent description (may span lines in the source)
        model: Model alias or ``provider/model`` identifier
        tools: Tool capability list in source order
        extra: Any other front matter keys, in source order
        body: Markdown body following the front matter

    Example:
        >>> agent = AgentUnit(
        ...     name="pr-reviewer",
        ...     description="Reviews pull requests",
        ...     tools=["Read", "Grep"],
        ... )
    """

    name: str
    description: str = ""
    model: str | None = None
    tools: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)
    body: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the name is usable as a path component."""
        return sanitize_unit_name(v)

    @field_validator("tools", mode="before")
    @classmethod
    def split_tools(cls, v: Any) -> list[str]:
        """Accept both ``[Read, Grep]`` and ``"Read, Grep"`` tool lists."""
        if v is None:
            return []
        if isinstance(v, str):
            return [tool.strip() for tool in v.split(",") if tool.strip()]
        if isinstance(v, dict):
            # Already a tool map: keep granted tools
            return [str(tool) for tool, granted in v.items() if granted]
        return [str(tool).strip() for tool in v if str(tool).strip()]

    @property
    def file_name(self) -> str:
        """Host file name for this agent."""
        return f"{self.name}.md"
