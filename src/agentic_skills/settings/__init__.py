"""Settings merger for host JSON configuration documents."""

from agentic_skills.settings.merger import (
    HOOK_REGISTRATIONS,
    build_hooks_fragment,
    contains_fragment,
    is_owned,
    merge,
    parse_settings,
    read_settings,
    unmerge,
    write_settings,
)

__all__ = [
    "HOOK_REGISTRATIONS",
    "build_hooks_fragment",
    "contains_fragment",
    "is_owned",
    "merge",
    "parse_settings",
    "read_settings",
    "unmerge",
    "write_settings",
]
