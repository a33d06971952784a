"""Agentic Skills - distribute skills, agents and hooks into AI coding-assistant hosts."""

from importlib.metadata import PackageNotFoundError, version

# Read version from package metadata (pyproject.toml)
try:
    __version__ = version("agentic-skills")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "0.0.0.dev"

__all__ = ["__version__"]
