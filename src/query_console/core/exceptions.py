"""Exception hierarchy for Query Console.

All exceptions carry an exit_code for CLI return value mapping.
Exit codes are defined in exit_codes.py.
"""

from query_console.core.exit_codes import ExitCode


class QueryConsoleError(Exception):
    """Base exception for all Query Console errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(QueryConsoleError):
    """Backend unreachable, HTTP failures."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Request timeout while starting or polling a job."""

    exit_code: int = ExitCode.TIMEOUT


class InputError(QueryConsoleError):
    """File not found, invalid parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(QueryConsoleError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR


class JobResponseError(QueryConsoleError):
    """Backend returned a payload that cannot be decoded."""

    exit_code: int = ExitCode.QUERY_ERROR


class EditorNotReadyError(QueryConsoleError):
    """Editor operation attempted before the editor surface was mounted."""
