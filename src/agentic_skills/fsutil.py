"""Filesystem helpers for governed files.

Every file the manager owns is written through :func:`atomic_write_bytes` so
that a crash mid-operation never exposes a half-written file: content goes to
a temp file in the destination directory and is moved into place with
``os.replace()``.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write bytes to path atomically via temp file + os.replace().

    Args:
        path: Destination file path (parent directories are created)
        data: File content
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        # Atomic replace (cross-platform safe)
        os.replace(temp_path, path)
    except Exception:
        # Clean up temp file on error
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise


def atomic_write_json(path: Path, data: Any) -> None:
    """Serialize data as indented JSON and write it atomically."""
    atomic_write_bytes(path, dump_json(data).encode("utf-8"))


def dump_json(data: Any) -> str:
    """Render JSON the way every governed JSON file is stored."""
    return json.dumps(data, indent=2) + "\n"


def write_if_changed(path: Path, data: bytes) -> bool:
    """Atomically write data unless the file already holds exactly these bytes.

    Returns:
        True if the file was written, False if it was already up to date
    """
    if path.is_file():
        try:
            if path.read_bytes() == data:
                return False
        except OSError as e:
            logger.debug(f"Could not compare {path}, rewriting: {e}")

    atomic_write_bytes(path, data)
    return True


def prune_empty_dirs(root: Path, names: list[str]) -> list[Path]:
    """Remove the named directories under root if they are empty.

    Args:
        root: Target root
        names: Root-relative directory names to check

    Returns:
        Directories that were removed
    """
    removed = []
    for name in names:
        directory = root / name
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()
            removed.append(directory)
    return removed
