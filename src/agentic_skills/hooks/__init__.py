"""Runtime hook bridge and helpers for deploying it."""

from importlib import resources

from agentic_skills.hooks.bridge import (
    RULES,
    HookBridge,
    HookRule,
    block_command,
    classify_command,
    create_plugin,
    extract_command,
    guard_command,
)

BRIDGE_MODULE = "bridge.py"


def bridge_source() -> bytes:
    """Return the bridge module source deployed as the hook artifact."""
    return resources.files("agentic_skills.hooks").joinpath(BRIDGE_MODULE).read_bytes()


__all__ = [
    "RULES",
    "HookBridge",
    "HookRule",
    "block_command",
    "bridge_source",
    "classify_command",
    "create_plugin",
    "extract_command",
    "guard_command",
]
