"""Manifest store: the persisted record of what is deployed under a root.

The manifest lives at ``<root>/.agentic-skills.manifest`` and records exactly
which bundle artifacts the manager placed there. Install, update and
uninstall are all driven by diffing manifests, so anything not recorded here
is never touched.

Writes are atomic (temp file + os.replace) so a crash never exposes a
half-written manifest.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from agentic_skills.bundle.security import is_safe_relative_path
from agentic_skills.exceptions import InstallValidationError, ManifestError, NotInstalledError
from agentic_skills.fsutil import dump_json, write_if_changed
from agentic_skills.targets.schema import (
    SINGLE_DOCUMENT_NAME,
    TargetSchema,
    get_layout,
    parse_target,
)

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = ".agentic-skills.manifest"


class Scope(str, Enum):
    """Install scope: which artifact classes are deployed."""

    FULL = "full"
    SKILLS_ONLY = "skills-only"
    HOOKS_ONLY = "hooks-only"

    @property
    def include_skills(self) -> bool:
        return self in (Scope.FULL, Scope.SKILLS_ONLY)

    @property
    def include_agents(self) -> bool:
        return self is Scope.FULL

    @property
    def include_hooks(self) -> bool:
        return self in (Scope.FULL, Scope.HOOKS_ONLY)

    @classmethod
    def from_flags(cls, skills_only: bool, hooks_only: bool) -> "Scope":
        """Resolve mutually exclusive scope flags.

        Raises:
            InstallValidationError: If both flags are set
        """
        if skills_only and hooks_only:
            raise InstallValidationError("--skills-only and --hooks-only are mutually exclusive")
        if skills_only:
            return cls.SKILLS_ONLY
        if hooks_only:
            return cls.HOOKS_ONLY
        return cls.FULL


def _ordered_unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class Manifest(BaseModel):
    """Pydantic model for the manifest file.

    Fields:
        target: Target schema of the root
        scope: Scope the root was installed with (reused by update)
        version: Tool version that wrote the manifest
        installed_at: First install timestamp (preserved across updates)
        source: Bundle directory or git URL the content came from
        skills: Deployed skill names (ordered set)
        agents: Deployed agent names (ordered set)
        hooks: True if the hook bridge and settings fragment are deployed
        plugin_files: Root-relative paths of deployed bridge artifacts

    Example:
        >>> manifest = Manifest(target=TargetSchema.CLAUDE, skills=["docker-production"])
        >>> manifest.artifact_paths()
        ['skills/docker-production']
    """

    target: TargetSchema
    scope: Scope = Scope.FULL
    version: str | None = None
    installed_at: str | None = None
    source: str | None = None
    skills: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    hooks: bool = False
    plugin_files: list[str] = Field(default_factory=list)

    @field_validator("target", mode="before")
    @classmethod
    def validate_target(cls, v: Any) -> TargetSchema:
        """Accept legacy ``<host>-project`` target identifiers."""
        if isinstance(v, TargetSchema):
            return v
        try:
            return parse_target(str(v))
        except InstallValidationError as e:
            raise ValueError(str(e)) from e

    @field_validator("skills", "agents")
    @classmethod
    def validate_names(cls, v: list[str]) -> list[str]:
        """Names form an ordered set and must be plain path components."""
        for name in v:
            if not is_safe_relative_path(name) or "/" in name:
                raise ValueError(f"Unsafe unit name in manifest: '{name}'")
        return _ordered_unique(v)

    @field_validator("plugin_files")
    @classmethod
    def validate_plugin_files(cls, v: list[str]) -> list[str]:
        """Plugin files form a set; stored sorted."""
        for path in v:
            if not is_safe_relative_path(path):
                raise ValueError(f"Unsafe plugin path in manifest: '{path}'")
        return sorted(set(v))

    def artifact_paths(self) -> list[str]:
        """Root-relative paths of every artifact this manifest references."""
        layout = get_layout(self.target)
        paths: list[str] = []
        if layout.single_document:
            if self.skills or self.agents:
                paths.append(SINGLE_DOCUMENT_NAME)
        else:
            paths.extend(f"skills/{name}" for name in self.skills)
            paths.extend(f"agents/{name}.md" for name in self.agents)
        paths.extend(self.plugin_files)
        return paths

    def to_json(self) -> str:
        """Serialize exactly as stored on disk."""
        return dump_json(self.model_dump(mode="json"))


@dataclass
class ManifestDiff:
    """Artifact paths to add and remove when moving between manifests."""

    to_add: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def diff(old: Manifest | None, new: Manifest) -> ManifestDiff:
    """Compute which artifact paths appear or disappear between manifests.

    Args:
        old: Currently installed manifest (None when not installed)
        new: Freshly computed manifest

    Returns:
        ManifestDiff preserving the order artifacts appear in each manifest
    """
    old_paths = old.artifact_paths() if old else []
    new_paths = new.artifact_paths()
    old_set = set(old_paths)
    new_set = set(new_paths)
    return ManifestDiff(
        to_add=[path for path in new_paths if path not in old_set],
        to_remove=[path for path in old_paths if path not in new_set],
    )


class ManifestStore:
    """Reads and writes the manifest of one target root.

    Attributes:
        root: Target root directory
        manifest_path: Path to the manifest file

    Example:
        >>> store = ManifestStore(Path(".claude"))
        >>> if store.exists():
        ...     manifest = store.read()
    """

    def __init__(self, root: Path):
        self.root = root
        self.manifest_path = root / MANIFEST_FILENAME

    def exists(self) -> bool:
        return self.manifest_path.is_file()

    def read(self) -> Manifest:
        """Load the manifest.

        Raises:
            NotInstalledError: If no manifest exists under the root
            ManifestError: If the manifest is not valid
        """
        if not self.exists():
            raise NotInstalledError(f"No installation found at {self.root}")

        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestError(f"Corrupted manifest {self.manifest_path}: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(f"Corrupted manifest {self.manifest_path}: expected a JSON object")

        try:
            return Manifest(**data)
        except ValidationError as e:
            raise ManifestError(f"Invalid manifest {self.manifest_path}:\n{e}") from e

    def read_optional(self) -> Manifest | None:
        """Load the manifest, or None if the root is not installed."""
        try:
            return self.read()
        except NotInstalledError:
            return None

    def write(self, manifest: Manifest) -> bool:
        """Write the manifest atomically.

        Returns:
            True if the file changed, False if it already held this content
        """
        changed = write_if_changed(self.manifest_path, manifest.to_json().encode("utf-8"))
        if changed:
            logger.info(f"Manifest saved: {self.manifest_path}")
        return changed

    def delete(self) -> None:
        """Remove the manifest file (missing file is not an error)."""
        self.manifest_path.unlink(missing_ok=True)
        logger.info(f"Manifest removed: {self.manifest_path}")


def discover_installations(candidates: list[Path]) -> list[Path]:
    """Find target roots holding a manifest.

    Args:
        candidates: Root directories or manifest file paths to check

    Returns:
        Unique resolved roots, in candidate order
    """
    roots: list[Path] = []
    seen: set[Path] = set()
    for candidate in candidates:
        root = candidate.parent if candidate.name == MANIFEST_FILENAME else candidate
        if not (root / MANIFEST_FILENAME).is_file():
            continue
        resolved = root.resolve()
        if resolved not in seen:
            seen.add(resolved)
            roots.append(root)
    return roots
