"""Name validation for bundle units.

Unit names become path components under a host root (``skills/<name>/``,
``agents/<name>.md``), so they are validated before anything is planned.
"""

import re

from agentic_skills.exceptions import UnitNameError

_UNIT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]{0,63}$")


def sanitize_unit_name(name: str) -> str:
    """Validate a skill or agent name for use as a path component.

    Args:
        name: Unit name (skill directory name or agent file stem)

    Returns:
        The validated name (unchanged if valid)

    Raises:
        UnitNameError: If name contains invalid characters or patterns

    Examples:
        >>> sanitize_unit_name("docker-production")
        'docker-production'
        >>> sanitize_unit_name("../etc/passwd")
        Traceback (most recent call last):
        ...
        UnitNameError: Invalid unit name: '../etc/passwd' (path traversal detected)
    """
    # Reserved names
    reserved = {".", "..", "~", "__pycache__", ""}
    if name in reserved:
        raise UnitNameError(f"Reserved unit name: '{name}'")

    # Reject path traversal patterns (check before regex)
    if ".." in name or "/" in name or "\\" in name:
        raise UnitNameError(f"Invalid unit name: '{name}' (path traversal detected)")

    if " " in name:
        raise UnitNameError(f"Invalid unit name: '{name}' (spaces not allowed)")

    if not _UNIT_NAME_PATTERN.match(name):
        raise UnitNameError(
            f"Invalid unit name: '{name}' "
            "(must start alphanumeric; letters, digits, '.', '-', '_'; 1-64 chars)"
        )

    return name


def is_safe_relative_path(path: str) -> bool:
    """Check that a manifest-recorded path stays inside its target root.

    Manifests are user-editable, so every recorded path is checked before the
    uninstaller acts on it.

    Examples:
        >>> is_safe_relative_path("skills/docker-production")
        True
        >>> is_safe_relative_path("../outside")
        False
    """
    if not path or path.startswith(("/", "\\", "~")):
        return False
    parts = path.replace("\\", "/").split("/")
    return all(part not in ("", ".", "..") for part in parts)
