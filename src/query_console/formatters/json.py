"""JSON formatter for diagnostics and query results."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from query_console.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from query_console.core.models import Diagnostic, QueryResult


def _serialize_value(val: Any) -> Any:
    if isinstance(val, (int, float, str, bool, type(None))):
        return val
    if isinstance(val, (list, dict)):
        return val
    return str(val)


def _row_to_dict(labels: list[str], row: list[Any]) -> dict[str, Any]:
    # Rows shorter or longer than the label list keep positional keys.
    keys = labels if len(labels) == len(row) else [str(i) for i in range(len(row))]
    return {key: _serialize_value(val) for key, val in zip(keys, row, strict=True)}


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def _dump(self, payload: Any) -> str:
        if self.compact:
            return json.dumps(payload, default=str)
        return json.dumps(payload, indent=2, default=str)

    def format_diagnostics(self, diagnostics: list[Diagnostic]) -> Iterator[str]:
        yield self._dump(
            [
                {
                    "startLine": d.start_line,
                    "endLine": d.end_line,
                    "startColumn": d.start_column,
                    "endColumn": d.end_column,
                    "message": d.message,
                    "severity": d.severity.name.lower(),
                }
                for d in diagnostics
            ]
        )

    def format_result(self, result: QueryResult) -> Iterator[str]:
        yield self._dump(
            {
                "queryId": result.query_id,
                "labels": result.labels,
                "bytesProcessed": result.bytes_processed,
                "rows": [_row_to_dict(result.labels, row) for row in result.content],
            }
        )


registry.register("json", JSONFormatter)
