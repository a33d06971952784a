"""Custom exceptions for agentic-skills.

This module defines a hierarchy of domain-specific exceptions shared by the
bundle reader, target adapter, settings merger, manifest store and installer.

Exception Hierarchy:
    AgenticSkillsError (base)
    ├── BundleError
    ├── UnitNameError
    ├── SchemaViolation
    ├── InvalidExistingDocument
    ├── ManifestError
    │   └── NotInstalledError
    ├── InstallValidationError
    ├── InstallAbortedError
    └── SourceFetchError
"""

from pathlib import Path


class AgenticSkillsError(Exception):
    """Base exception for all agentic-skills errors.

    Example:
        >>> try:
        ...     # some install operation
        ...     pass
        ... except AgenticSkillsError as e:
        ...     print(f"Install error: {e}")
    """

    pass


class BundleError(AgenticSkillsError):
    """Source bundle is missing, malformed, or unreadable.

    Raised when the bundle root lacks a ``skills/`` or ``agents/`` directory,
    or when a SKILL.md / agent definition cannot be parsed.

    Example:
        >>> raise BundleError("Cannot find skills/ directory in /tmp/bundle")
    """

    pass


class UnitNameError(AgenticSkillsError):
    """Skill or agent name is unsafe to use as a filesystem path component.

    Example:
        >>> raise UnitNameError("Invalid unit name: '../etc/passwd'")
    """

    pass


class SchemaViolation(AgenticSkillsError):
    """A unit cannot be represented in a target schema.

    Aborts conversion of that unit only.

    Attributes:
        unit: Name of the skill or agent that failed conversion
        constraint: Human-readable description of the violated constraint
    """

    def __init__(self, unit: str, constraint: str):
        self.unit = unit
        self.constraint = constraint
        super().__init__(f"{unit}: {constraint}")


class InvalidExistingDocument(AgenticSkillsError):
    """Existing host settings document cannot be parsed.

    The manager never overwrites content it cannot parse, so this aborts the
    operation before anything is written.

    Attributes:
        path: Settings document path (None when merging in-memory text)
        reason: Parser error message
    """

    def __init__(self, path: Path | None, reason: str):
        self.path = path
        self.reason = reason
        where = str(path) if path else "settings document"
        super().__init__(f"Invalid JSON in {where}: {reason}")


class ManifestError(AgenticSkillsError):
    """Manifest file exists but is unreadable or malformed."""

    pass


class NotInstalledError(ManifestError):
    """No manifest exists under the requested target root.

    Example:
        >>> raise NotInstalledError("No installation found at .claude")
    """

    pass


class InstallValidationError(AgenticSkillsError):
    """Invalid flag combination or missing path, detected before any write.

    Example:
        >>> raise InstallValidationError("--skills-only and --hooks-only are mutually exclusive")
    """

    pass


class InstallAbortedError(AgenticSkillsError):
    """User declined (or could not be asked) to overwrite unrecorded files."""

    pass


class SourceFetchError(AgenticSkillsError):
    """Alternate bundle source could not be fetched for self-update."""

    pass
