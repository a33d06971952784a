"""Bundle source resolution for self-update.

A source is either a local bundle directory or a git URL. URLs are
shallow-cloned into a temporary directory that is always removed when the
context manager exits.
"""

import gc
import logging
import shutil
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from git import GitCommandError, Repo

from agentic_skills.exceptions import SourceFetchError

logger = logging.getLogger(__name__)

DEFAULT_REF = "main"

_URL_PREFIXES = ("http://", "https://", "git://", "ssh://", "git@", "file://")


def is_git_url(source: str) -> bool:
    """Check whether a source string names a remote repository.

    Examples:
        >>> is_git_url("https://github.com/example/agentic-skills.git")
        True
        >>> is_git_url("./agentic-skills")
        False
    """
    return source.startswith(_URL_PREFIXES) or source.endswith(".git")


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except (PermissionError, FileNotFoundError) as e:
        # On Windows, git may still hold pack file handles
        if isinstance(e, PermissionError):
            logger.warning(f"Could not delete temporary directory {path}: {e}")


@contextmanager
def resolve_source(source: str, ref: str | None = None) -> Iterator[Path]:
    """Yield a local bundle directory for a source.

    Args:
        source: Local directory path or git URL
        ref: Branch or tag to clone (URLs only; default: main)

    Yields:
        Directory containing the bundle

    Raises:
        SourceFetchError: If the directory does not exist or cloning fails
    """
    if not is_git_url(source):
        path = Path(source).expanduser()
        if not path.is_dir():
            raise SourceFetchError(f"Source directory not found: {source}")
        yield path
        return

    temp_dir = Path(tempfile.mkdtemp(prefix="agentic-skills-src-"))
    clone_dir = temp_dir / "bundle"
    repo = None
    try:
        logger.info(f"Cloning bundle from {source} ({ref or DEFAULT_REF})...")
        clone_kwargs: dict[str, Any] = {"depth": 1, "branch": ref or DEFAULT_REF}
        try:
            repo = Repo.clone_from(source, clone_dir, **clone_kwargs)
        except GitCommandError as e:
            logger.error(f"Failed to clone {source}: {e}")
            raise SourceFetchError(
                f"Could not clone {source} at '{ref or DEFAULT_REF}': {e}"
            ) from e

        yield clone_dir

    finally:
        if repo is not None:
            repo.close()
            if sys.platform == "win32":
                del repo
                gc.collect()
        if temp_dir.exists():
            _remove_tree(temp_dir)
