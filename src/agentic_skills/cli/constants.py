"""Constants for CLI module."""


class ExitCodes:
    """Standard exit codes."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_INSTALLED = 3
    INTERRUPTED = 130
