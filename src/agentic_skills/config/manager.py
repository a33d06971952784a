"""Configuration file manager for loading, saving, and resolving settings."""

import json
import os
from pathlib import Path

from pydantic import ValidationError

from agentic_skills.config.constants import (
    DEFAULT_DATA_DIR,
    ENV_GENERIC_LOG_LEVEL,
    ENV_HOME,
    ENV_LOG_LEVEL,
    ENV_SOURCE,
    LOG_DIRNAME,
    LOG_FILENAME,
    SETTINGS_FILENAME,
)
from agentic_skills.config.schema import ManagerSettings
from agentic_skills.exceptions import AgenticSkillsError
from agentic_skills.fsutil import atomic_write_bytes


class ConfigurationError(AgenticSkillsError):
    """Raised when configuration operations fail."""

    pass


def get_data_dir() -> Path:
    """Get the manager's data directory.

    Returns:
        ``$AGENTIC_SKILLS_HOME`` if set, otherwise ~/.agentic-skills
    """
    override = os.getenv(ENV_HOME)
    if override:
        return Path(override).expanduser()
    return DEFAULT_DATA_DIR


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    return get_data_dir() / SETTINGS_FILENAME


def get_log_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / LOG_DIRNAME / LOG_FILENAME


def load_config(config_path: Path | None = None) -> ManagerSettings:
    """Load configuration from JSON file.

    Args:
        config_path: Optional path to config file. Defaults to get_config_path()

    Returns:
        ManagerSettings loaded from file, or defaults if the file doesn't exist

    Raises:
        ConfigurationError: If file exists but is invalid JSON or fails validation

    Example:
        >>> settings = load_config()
        >>> settings.hook_python
        'python3'
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        return ManagerSettings()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must hold a JSON object")
        return ManagerSettings(**data)

    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed for {config_path}:\n{e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}") from e


def save_config(settings: ManagerSettings, config_path: Path | None = None) -> None:
    """Save configuration, writing only non-default values.

    Raises:
        ConfigurationError: If save operation fails
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        atomic_write_bytes(config_path, settings.model_dump_json_minimal().encode("utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Failed to save configuration to {config_path}: {e}") from e


def merge_with_env(settings: ManagerSettings) -> ManagerSettings:
    """Apply environment variable overrides to loaded settings.

    Environment variables take precedence over file settings:
    ``AGENTIC_SKILLS_SOURCE`` replaces ``source_dir`` and
    ``AGENTIC_SKILLS_LOG_LEVEL`` (then ``LOG_LEVEL``) replaces ``log_level``.

    Raises:
        ConfigurationError: If an override is not a valid value
    """
    overrides = {}
    if os.getenv(ENV_SOURCE):
        overrides["source_dir"] = os.getenv(ENV_SOURCE)

    log_level = os.getenv(ENV_LOG_LEVEL) or os.getenv(ENV_GENERIC_LOG_LEVEL)
    if log_level:
        overrides["log_level"] = log_level

    if not overrides:
        return settings

    try:
        return ManagerSettings(**{**settings.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment override:\n{e}") from e


def resolve_bundle_dir(settings: ManagerSettings) -> Path | None:
    """Bundle directory configured by the user, or None for the packaged bundle.

    Raises:
        ConfigurationError: If the configured directory does not exist
    """
    if not settings.source_dir:
        return None
    path = Path(settings.source_dir).expanduser()
    if not path.is_dir():
        raise ConfigurationError(f"Configured bundle source does not exist: {path}")
    return path
