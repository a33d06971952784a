"""Non-destructive merging of the manager's fragment into host settings.

The manager owns exactly one thing inside a host settings document: the hook
registration entries whose command references the bridge artifact (the
ownership token). Everything else - permission lists, user hooks, unrelated
keys - is preserved as-is and in its original order.

Merge rules:
- object-valued keys merge recursively
- list-valued keys: elements carrying the token are replaced in place (at
  the position of the first owned element) or appended; other elements are
  untouched
- scalars from the fragment win (they only occur inside the owned sub-tree)

Merging an already-merged document yields the same document.
"""

import copy
import json
import logging
import shlex
from pathlib import Path
from typing import Any

from agentic_skills.exceptions import InvalidExistingDocument
from agentic_skills.fsutil import atomic_write_json
from agentic_skills.targets.schema import HOOK_ARTIFACT_NAME

logger = logging.getLogger(__name__)

# Host event -> (matcher, bridge subcommand)
HOOK_REGISTRATIONS: list[tuple[str, str, str]] = [
    ("PreToolUse", "Bash", "pre-tool-use"),
    ("SessionStart", "startup", "session-created"),
    ("SessionStart", "compact", "session-compacted"),
]


def parse_settings(text: str | None, path: Path | None = None) -> dict[str, Any]:
    """Parse an existing settings document.

    Args:
        text: Document text, or None if the document does not exist
        path: Document path for error messages

    Returns:
        Parsed JSON object ({} for a missing or blank document)

    Raises:
        InvalidExistingDocument: If the text is not a JSON object
    """
    if text is None or not text.strip():
        return {}

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidExistingDocument(path, str(e)) from e

    if not isinstance(data, dict):
        raise InvalidExistingDocument(path, f"expected a JSON object, found {type(data).__name__}")

    return data


def is_owned(element: Any, token: str = HOOK_ARTIFACT_NAME) -> bool:
    """Check whether a list element belongs to the manager.

    An element is owned if any string anywhere inside it contains the token.
    """
    if isinstance(element, str):
        return token in element
    if isinstance(element, dict):
        return any(is_owned(value, token) for value in element.values())
    if isinstance(element, list):
        return any(is_owned(value, token) for value in element)
    return False


def _merge_list(existing: list[Any], incoming: list[Any], token: str) -> list[Any]:
    owned_incoming = [copy.deepcopy(item) for item in incoming if is_owned(item, token)]
    plain_incoming = [item for item in incoming if not is_owned(item, token)]

    merged: list[Any] = []
    inserted = False
    for item in existing:
        if is_owned(item, token):
            if not inserted:
                merged.extend(owned_incoming)
                inserted = True
            continue
        merged.append(item)

    if not inserted:
        merged.extend(owned_incoming)

    # Unowned fragment values are only added when missing
    for item in plain_incoming:
        if item not in merged:
            merged.append(copy.deepcopy(item))

    return merged


def _merge_value(existing: Any, incoming: Any, token: str) -> Any:
    if isinstance(existing, dict) and isinstance(incoming, dict):
        merged = dict(existing)
        for key, value in incoming.items():
            if key in merged:
                merged[key] = _merge_value(merged[key], value, token)
            else:
                merged[key] = copy.deepcopy(value)
        return merged

    if isinstance(existing, list) and isinstance(incoming, list):
        return _merge_list(existing, incoming, token)

    return copy.deepcopy(incoming)


def merge(
    existing: dict[str, Any], fragment: dict[str, Any], token: str = HOOK_ARTIFACT_NAME
) -> dict[str, Any]:
    """Deep-merge the governed fragment into an existing settings object.

    Args:
        existing: Parsed host settings (not modified)
        fragment: Manager-owned fragment
        token: Ownership token identifying manager list entries

    Returns:
        New merged settings object

    Example:
        >>> merged = merge({"permissions": {"allow": ["Bash(echo:*)"]}}, fragment)
        >>> merged["permissions"]["allow"]
        ['Bash(echo:*)']
    """
    return _merge_value(existing, fragment, token)


def _strip_owned(value: Any, token: str) -> tuple[Any, bool]:
    """Remove owned list elements; return (value, changed)."""
    if isinstance(value, dict):
        result = {}
        changed = False
        for key, child in value.items():
            stripped, child_changed = _strip_owned(child, token)
            changed = changed or child_changed
            # Prune containers emptied by the removal, never pre-existing empties
            if child_changed and stripped in ({}, []):
                continue
            result[key] = stripped
        return result, changed

    if isinstance(value, list):
        kept = []
        changed = False
        for item in value:
            if is_owned(item, token):
                changed = True
                continue
            stripped, item_changed = _strip_owned(item, token)
            changed = changed or item_changed
            kept.append(stripped)
        return kept, changed

    return value, False


def unmerge(existing: dict[str, Any], token: str = HOOK_ARTIFACT_NAME) -> dict[str, Any]:
    """Remove the manager's entries from a settings object.

    Containers that become empty because of the removal are pruned; all other
    content, including pre-existing empty containers, is preserved.
    """
    stripped, _ = _strip_owned(existing, token)
    return stripped


def contains_fragment(
    existing: dict[str, Any], fragment: dict[str, Any], token: str = HOOK_ARTIFACT_NAME
) -> bool:
    """Check that merging the fragment would not change the document."""
    return merge(existing, fragment, token) == existing


def build_hooks_fragment(artifact_path: Path, python: str = "python3") -> dict[str, Any]:
    """Build the hook registration fragment for a deployed bridge artifact.

    Args:
        artifact_path: Absolute path of the deployed bridge file
        python: Interpreter used to run the bridge

    Returns:
        ``{"hooks": {event: [{"matcher": ..., "hooks": [command]}]}}``
    """
    hooks: dict[str, list[dict[str, Any]]] = {}
    for event, matcher, subcommand in HOOK_REGISTRATIONS:
        command = f"{python} {shlex.quote(str(artifact_path))} {subcommand}"
        hooks.setdefault(event, []).append(
            {"matcher": matcher, "hooks": [{"type": "command", "command": command}]}
        )
    return {"hooks": hooks}


def read_settings(path: Path) -> dict[str, Any]:
    """Read and parse a settings document ({} if it does not exist).

    Raises:
        InvalidExistingDocument: If the file is not a JSON object
    """
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidExistingDocument(path, str(e)) from e
    return parse_settings(text, path)


def write_settings(path: Path, data: dict[str, Any]) -> None:
    """Write a settings document atomically."""
    atomic_write_json(path, data)
    logger.info(f"Wrote settings document {path}")
