"""Standard exit codes for Query Console.

Exit codes follow Unix conventions; QUERY_ERROR is reserved for queries the
backend rejected (diagnostics found, job failed).
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for Query Console commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    QUERY_ERROR = 8
