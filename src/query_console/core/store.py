"""Result store that receives decoded query pages keyed by editor id."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from query_console.core.models import QueryResult


class ResultStore(Protocol):
    def push_result(self, query_id: str, result: QueryResult) -> None:
        """Store the latest result for query_id, replacing any previous one."""
        ...

    def clear_result(self, query_id: str) -> None:
        """Drop the result but keep the slot for query_id."""
        ...

    def delete_entry(self, query_id: str) -> None:
        """Remove the slot for query_id entirely."""
        ...


class InMemoryResultStore:
    """Dict-backed ResultStore shared by the editors of one process."""

    def __init__(self) -> None:
        self._results: dict[str, QueryResult | None] = {}

    def __contains__(self, query_id: object) -> bool:
        return query_id in self._results

    def get(self, query_id: str) -> QueryResult | None:
        return self._results.get(query_id)

    def push_result(self, query_id: str, result: QueryResult) -> None:
        self._results[query_id] = result

    def clear_result(self, query_id: str) -> None:
        self._results[query_id] = None

    def delete_entry(self, query_id: str) -> None:
        self._results.pop(query_id, None)
