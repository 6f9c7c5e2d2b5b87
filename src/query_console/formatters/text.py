"""Plain text formatter for terminals."""

from __future__ import annotations

from typing import TYPE_CHECKING

from query_console.cli.helpers import fmt_size, format_diagnostic
from query_console.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from query_console.core.models import Diagnostic, QueryResult


class TextFormatter:
    def __init__(self, source: str | None = None) -> None:
        self.source = source

    def format_diagnostics(self, diagnostics: list[Diagnostic]) -> Iterator[str]:
        if not diagnostics:
            yield "No problems found."
            return
        for d in diagnostics:
            yield format_diagnostic(d, source=self.source)

    def format_result(self, result: QueryResult) -> Iterator[str]:
        rows = len(result.content)
        cols = len(result.labels)
        line = f"{rows} row{'s' if rows != 1 else ''} x {cols} column{'s' if cols != 1 else ''}"
        if result.bytes_processed:
            line += f" (processed {fmt_size(result.bytes_processed)})"
        yield line
        if result.labels:
            yield "columns: " + ", ".join(result.labels)


registry.register("text", TextFormatter)
