"""Pydantic models for manager configuration."""

from pydantic import BaseModel, field_validator

from agentic_skills.config.constants import DEFAULT_HOOK_PYTHON, DEFAULT_LOG_LEVEL
from agentic_skills.targets.schema import TargetSchema

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ManagerSettings(BaseModel):
    """Settings stored in ``<data dir>/settings.json``.

    Fields:
        log_level: Level for the log file
        source_dir: Bundle directory used instead of the packaged bundle
        hook_python: Interpreter written into hook commands
        default_target: Target used by ``install`` when no target flag is given

    Example:
        >>> settings = ManagerSettings(default_target="opencode")
        >>> settings.default_target
        <TargetSchema.OPENCODE: 'opencode'>
    """

    log_level: str = DEFAULT_LOG_LEVEL
    source_dir: str | None = None
    hook_python: str = DEFAULT_HOOK_PYTHON
    default_target: TargetSchema = TargetSchema.CLAUDE

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level name."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return level

    @field_validator("hook_python")
    @classmethod
    def validate_hook_python(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("hook_python cannot be empty")
        return v.strip()

    def model_dump_json_minimal(self) -> str:
        """Serialize only values that differ from the defaults."""
        return self.model_dump_json(indent=2, exclude_defaults=True) + "\n"
