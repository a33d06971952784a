"""Target schemas: the closed set of supported host layouts.

Adding a host means adding an enum member, a ``TargetLayout`` entry and a
conversion function in :mod:`agentic_skills.targets.convert`.
"""

from dataclasses import dataclass
from enum import Enum

from agentic_skills.exceptions import InstallValidationError

# Bridge artifact file name; also the ownership token inside host settings
HOOK_ARTIFACT_NAME = "agentic_skills_hooks.py"

SINGLE_DOCUMENT_NAME = "codex.md"

# Maximum length of a folded single-line description for constrained schemas
DESCRIPTION_LIMIT = 1024


class TargetSchema(str, Enum):
    """Supported host layouts."""

    CLAUDE = "claude"
    OPENCODE = "opencode"
    CODEX = "codex"
    CODEX_MD = "codex-md"


@dataclass(frozen=True)
class TargetLayout:
    """Directory conventions for one target schema.

    Attributes:
        default_root: Root directory relative to the working directory
        label: Human-readable host name
        single_document: True if all units are concatenated into one file
        hook_dir: Root-relative directory holding the bridge artifact (None if
            the host has no hook support)
        settings_file: Root-relative settings document receiving the hook
            registration (None if the host has no hook support)
    """

    default_root: str
    label: str
    single_document: bool = False
    hook_dir: str | None = None
    settings_file: str | None = None

    @property
    def supports_hooks(self) -> bool:
        return self.hook_dir is not None

    @property
    def hook_artifact(self) -> str | None:
        """Root-relative path of the bridge artifact."""
        if self.hook_dir is None:
            return None
        return f"{self.hook_dir}/{HOOK_ARTIFACT_NAME}"


LAYOUTS: dict[TargetSchema, TargetLayout] = {
    TargetSchema.CLAUDE: TargetLayout(
        default_root=".claude",
        label="Claude Code",
        hook_dir="hooks",
        settings_file="settings.json",
    ),
    TargetSchema.OPENCODE: TargetLayout(
        default_root=".opencode",
        label="OpenCode",
        hook_dir="plugins",
    ),
    TargetSchema.CODEX: TargetLayout(
        default_root=".codex",
        label="Codex CLI",
    ),
    TargetSchema.CODEX_MD: TargetLayout(
        default_root=".",
        label="Codex CLI (codex.md)",
        single_document=True,
    ),
}


def get_layout(schema: TargetSchema) -> TargetLayout:
    """Return the layout for a schema."""
    return LAYOUTS[schema]


def parse_target(value: str) -> TargetSchema:
    """Parse a target identifier as stored in a manifest.

    Also accepts the ``<host>-project`` / ``<host>-global`` spellings.

    Raises:
        InstallValidationError: If the identifier is unknown
    """
    normalized = value.strip().lower()
    for suffix in ("-project", "-global"):
        if normalized.endswith(suffix):
            normalized = normalized[: -len(suffix)]
    try:
        return TargetSchema(normalized)
    except ValueError:
        valid = ", ".join(schema.value for schema in TargetSchema)
        raise InstallValidationError(f"Unknown target '{value}' (expected one of: {valid})")
