"""Configuration constants for agentic-skills.

Single source of truth for default paths and environment variable names.
Separated from schema.py and manager.py to avoid circular imports.
"""

from pathlib import Path

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".agentic-skills"
SETTINGS_FILENAME = "settings.json"
LOG_DIRNAME = "logs"
LOG_FILENAME = "agentic-skills.log"

# Environment variables
ENV_HOME = "AGENTIC_SKILLS_HOME"
ENV_SOURCE = "AGENTIC_SKILLS_SOURCE"
ENV_LOG_LEVEL = "AGENTIC_SKILLS_LOG_LEVEL"
ENV_GENERIC_LOG_LEVEL = "LOG_LEVEL"

# Defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_HOOK_PYTHON = "python3"
