"""Shared CLI formatting helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from query_console.core.models import Diagnostic


def fmt_size(b: int | None) -> str:
    """Format bytes as human-readable size."""
    if not b:
        return "-"
    units = [("TB", 1 << 40), ("GB", 1 << 30), ("MB", 1 << 20), ("KB", 1 << 10)]
    for suffix, threshold in units:
        if b >= threshold:
            value = b / threshold
            return f"{value:.0f} {suffix}" if value >= 10 else f"{value:.1f} {suffix}"
    return f"{b}B"


def format_processed(bytes_processed: int | None) -> str | None:
    """Status line for the bytes a query has scanned so far."""
    if not bytes_processed:
        return None
    return f"Processed {fmt_size(bytes_processed)}"


def format_diagnostic(diagnostic: Diagnostic, source: str | None = None) -> str:
    """Render as ``[source:]line:start-end: severity: message``.

    Unlocated diagnostics (line -1) are rendered with ``?`` positions.
    """
    prefix = f"{source}:" if source else ""
    if diagnostic.start_line < 1:
        position = "?:?"
    else:
        position = (
            f"{diagnostic.start_line}:"
            f"{diagnostic.start_column}-{diagnostic.end_column}"
        )
    severity = diagnostic.severity.name.lower()
    return f"{prefix}{position}: {severity}: {diagnostic.message.strip()}"
