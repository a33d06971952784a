"""Configuration package for agentic-skills."""

from .manager import (
    ConfigurationError,
    get_config_path,
    get_data_dir,
    get_log_path,
    load_config,
    merge_with_env,
    resolve_bundle_dir,
    save_config,
)
from .schema import ManagerSettings

__all__ = [
    # Schema
    "ManagerSettings",
    # Manager
    "ConfigurationError",
    "get_config_path",
    "get_data_dir",
    "get_log_path",
    "load_config",
    "merge_with_env",
    "resolve_bundle_dir",
    "save_config",
]
