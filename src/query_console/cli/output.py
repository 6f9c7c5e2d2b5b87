"""Output format selection and TTY auto-detection."""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from query_console.formatters.base import Formatter


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None) -> str:
    """Determine the output format.

    Explicit --format overrides TTY detection.
    Default: text for TTY, json for pipes.
    """
    if format_flag is not None:
        return format_flag
    return "text" if detect_tty() else "json"


def get_formatter(
    format_flag: str | None = None,
    *,
    compact: bool = False,
    source: str | None = None,
) -> Formatter:
    """Build and return the appropriate formatter instance."""
    # Import here to trigger registry population from formatter modules.
    import query_console.formatters.json  # noqa: F401
    import query_console.formatters.text  # noqa: F401
    from query_console.formatters.base import registry

    fmt_name = resolve_format(format_flag)

    kwargs: dict[str, object] = {}
    if fmt_name == "json":
        kwargs["compact"] = compact
    elif fmt_name == "text":
        kwargs["source"] = source

    return registry.get(fmt_name, **kwargs)


def write_output(lines: Iterable[str]) -> None:
    """Write formatted output to stdout."""
    for line in lines:
        sys.stdout.write(line + "\n")
    sys.stdout.flush()
