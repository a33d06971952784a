"""Utility functions for CLI module."""

import logging
import os
import platform
import sys

from rich.console import Console
from rich.prompt import Confirm

from agentic_skills.config import get_log_path
from agentic_skills.config.constants import DEFAULT_LOG_LEVEL, ENV_GENERIC_LOG_LEVEL, ENV_LOG_LEVEL
from agentic_skills.config.schema import ManagerSettings

logger = logging.getLogger(__name__)


def get_console() -> Console:
    """Create Rich console with proper encoding for Windows.

    On Windows in non-interactive mode (subprocess, pipe, etc.), the default
    encoding is often CP1252 which cannot handle Unicode characters, so
    UTF-8 is forced when possible.

    Returns:
        Console: Configured Rich console instance
    """
    if platform.system() == "Windows" and not sys.stdout.isatty():
        import locale

        encoding = locale.getpreferredencoding() or ""
        if "utf" not in encoding.lower():
            os.environ["PYTHONIOENCODING"] = "utf-8"
            return Console(force_terminal=True, legacy_windows=False)
    return Console()


def setup_logging(settings: ManagerSettings | None = None) -> str:
    """Setup logging to file (not console).

    Level comes from AGENTIC_SKILLS_LOG_LEVEL, then LOG_LEVEL, then the
    settings file, then INFO.

    Returns:
        Path to log file as string
    """
    log_file = get_log_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = os.getenv(ENV_LOG_LEVEL) or os.getenv(ENV_GENERIC_LOG_LEVEL)
    if not log_level:
        log_level = settings.log_level if settings else DEFAULT_LOG_LEVEL

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=str(log_file),
        filemode="a",  # Append mode
        force=True,  # Reconfigure if already configured
    )
    return str(log_file)


def confirm_with_user(message: str, default: bool) -> bool:
    """Ask for confirmation on an interactive terminal.

    Non-interactive sessions (pipes, CI) get the default without prompting.
    """
    if not sys.stdin.isatty():
        logger.info(f"Non-interactive session, answering '{default}' to: {message}")
        return default
    return Confirm.ask(message, default=default)
