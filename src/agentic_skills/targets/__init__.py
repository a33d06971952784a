"""Target adapter: host schemas and per-schema unit conversion."""

from agentic_skills.targets.convert import (
    DocumentSection,
    HostArtifact,
    convert,
    render_single_document,
    roster_line,
)
from agentic_skills.targets.schema import (
    DESCRIPTION_LIMIT,
    HOOK_ARTIFACT_NAME,
    LAYOUTS,
    SINGLE_DOCUMENT_NAME,
    TargetLayout,
    TargetSchema,
    get_layout,
    parse_target,
)

__all__ = [
    "DESCRIPTION_LIMIT",
    "HOOK_ARTIFACT_NAME",
    "LAYOUTS",
    "SINGLE_DOCUMENT_NAME",
    "DocumentSection",
    "HostArtifact",
    "TargetLayout",
    "TargetSchema",
    "convert",
    "get_layout",
    "parse_target",
    "render_single_document",
    "roster_line",
]
