"""Source bundle discovery and loading.

A bundle is a directory laid out as::

    <bundle>/
        skills/<skill-name>/SKILL.md   (+ any supporting files)
        agents/<agent-name>.md

The bundle is read-only input: it is scanned fresh on every operation so
counts and content always reflect the live bundle.
"""

import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from pydantic import ValidationError

from agentic_skills.bundle.frontmatter import extract_yaml_frontmatter
from agentic_skills.bundle.models import AgentUnit, SkillUnit
from agentic_skills.exceptions import BundleError, UnitNameError

logger = logging.getLogger(__name__)

SKILL_MANIFEST = "SKILL.md"

# Files never copied from a skill directory
_IGNORED_NAMES = {"__pycache__", ".DS_Store"}


@dataclass
class SourceBundle:
    """Immutable catalog of skills and agents read from a bundle directory.

    Attributes:
        root: Bundle root directory
        skills: Skill units sorted by name
        agents: Agent units sorted by name
    """

    root: Path
    skills: list[SkillUnit] = field(default_factory=list)
    agents: list[AgentUnit] = field(default_factory=list)

    @property
    def skill_names(self) -> list[str]:
        return [skill.name for skill in self.skills]

    @property
    def agent_names(self) -> list[str]:
        return [agent.name for agent in self.agents]


def get_packaged_bundle_dir() -> Path:
    """Locate the sample bundle shipped inside the package.

    Uses importlib.resources so it works both installed and in development.
    """
    return Path(str(resources.files("agentic_skills").joinpath("_bundle")))


def scan_skill_directory(directory: Path) -> list[Path]:
    """Scan directory for skills (subdirectories containing SKILL.md).

    Args:
        directory: The bundle's ``skills/`` directory

    Returns:
        Skill directory paths sorted by name
    """
    if not directory.exists():
        return []

    skill_dirs = []
    for item in directory.iterdir():
        if not item.is_dir():
            continue

        skill_md = item / SKILL_MANIFEST
        if skill_md.exists() and skill_md.is_file():
            skill_dirs.append(item)

    return sorted(skill_dirs, key=lambda p: p.name)


def _list_files(directory: Path) -> list[str]:
    """List every file under directory as sorted POSIX relative paths."""
    files = []
    for path in directory.rglob("*"):
        relative = path.relative_to(directory)
        if any(part in _IGNORED_NAMES for part in relative.parts):
            continue
        if path.is_file():
            files.append(relative.as_posix())
    return sorted(files)


def load_skill(skill_dir: Path) -> SkillUnit:
    """Load a skill directory into a SkillUnit.

    Raises:
        BundleError: If SKILL.md is unreadable or has invalid front matter
    """
    manifest_path = skill_dir / SKILL_MANIFEST
    try:
        document = manifest_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise BundleError(f"{manifest_path} must be UTF-8 encoded") from e

    try:
        yaml_data, _ = extract_yaml_frontmatter(document)
    except BundleError as e:
        raise BundleError(f"{manifest_path}: {e}") from e

    try:
        return SkillUnit(
            name=skill_dir.name,
            source_directory=skill_dir.resolve(),
            files=_list_files(skill_dir),
            description=str(yaml_data.get("description") or ""),
            document=document,
        )
    except ValidationError as e:
        raise BundleError(f"Invalid skill '{skill_dir.name}': {e}") from e


def load_agent(agent_file: Path) -> AgentUnit:
    """Load an agent definition file into an AgentUnit.

    Raises:
        BundleError: If the file is unreadable or has invalid front matter
    """
    try:
        content = agent_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise BundleError(f"{agent_file} must be UTF-8 encoded") from e

    try:
        yaml_data, body = extract_yaml_frontmatter(content)
    except BundleError as e:
        raise BundleError(f"{agent_file}: {e}") from e

    # Known fields are lifted out; everything else rides along in extra
    yaml_data.pop("name", None)
    description = yaml_data.pop("description", "")
    model = yaml_data.pop("model", None)
    tools = yaml_data.pop("tools", None)

    try:
        return AgentUnit(
            name=agent_file.stem,
            description=str(description or ""),
            model=str(model) if model is not None else None,
            tools=tools,
            extra=yaml_data,
            body=body,
        )
    except ValidationError as e:
        raise BundleError(f"Invalid agent '{agent_file.stem}': {e}") from e


def load_bundle(root: Path) -> SourceBundle:
    """Load a source bundle from disk.

    Args:
        root: Bundle root containing ``skills/`` and ``agents/``

    Returns:
        SourceBundle with skills and agents sorted by name

    Raises:
        BundleError: If the bundle layout is invalid or a unit cannot be parsed
    """
    skills_dir = root / "skills"
    agents_dir = root / "agents"

    if not skills_dir.is_dir():
        raise BundleError(f"Cannot find skills/ directory in {root}")
    if not agents_dir.is_dir():
        raise BundleError(f"Cannot find agents/ directory in {root}")

    skills = []
    for skill_dir in scan_skill_directory(skills_dir):
        try:
            skills.append(load_skill(skill_dir))
        except UnitNameError as e:
            raise BundleError(str(e)) from e

    agents = []
    for agent_file in sorted(agents_dir.glob("*.md"), key=lambda p: p.name):
        if not agent_file.is_file():
            continue
        try:
            agents.append(load_agent(agent_file))
        except UnitNameError as e:
            raise BundleError(str(e)) from e

    logger.info(f"Loaded bundle from {root}: {len(skills)} skills, {len(agents)} agents")
    return SourceBundle(root=root.resolve(), skills=skills, agents=agents)
