"""Data models for Query Console.

Pydantic models for the request/update wire shapes exchanged with the query
backend, plus the enums and value objects that flow between the polling
client, the job controller, the validator and the editor surface.
"""

from __future__ import annotations

import json
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from query_console.core.exceptions import JobResponseError


class JobState(str, Enum):
    """State reported by the polling client on each update.

    PENDING means an intermediate page arrived; FAIL and DONE are terminal.
    """

    PENDING = "PENDING"
    FAIL = "FAIL"
    DONE = "DONE"


class ButtonState(str, Enum):
    """User-facing projection of the submitted job's state."""

    READY = "READY"
    PENDING = "PENDING"
    ERROR = "ERROR"


class Severity(IntEnum):
    HINT = 1
    INFO = 2
    WARNING = 4
    ERROR = 8


class QueryRequest(BaseModel):
    """Body sent to the backend for both dry runs and real submissions."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    query: str
    job_config: dict[str, Any] = Field(default_factory=dict, alias="jobConfig")
    dry_run_only: bool = Field(alias="dryRunOnly")

    @classmethod
    def validation(
        cls, query: str, job_config: dict[str, Any] | None = None
    ) -> QueryRequest:
        return cls(query=query, job_config=dict(job_config or {}), dry_run_only=True)

    @classmethod
    def submission(
        cls, query: str, job_config: dict[str, Any] | None = None
    ) -> QueryRequest:
        return cls(query=query, job_config=dict(job_config or {}), dry_run_only=False)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Diagnostic(BaseModel):
    """A positioned annotation on the query text.

    Lines are 1-based. Columns follow the backend's locator convention and
    end_column is exclusive.
    """

    model_config = ConfigDict(frozen=True)

    start_line: int
    end_line: int
    start_column: int
    end_column: int
    message: str
    severity: Severity = Severity.ERROR


class QueryResult(BaseModel):
    """One decoded page of a submitted query, tagged with its editor's id."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: list[list[Any]]
    labels: list[str]
    bytes_processed: int | None = None
    query_id: str


class JobSnapshot(BaseModel):
    """Read-only view of a job controller handed to listeners."""

    model_config = ConfigDict(frozen=True)

    button_state: ButtonState
    bytes_processed: int | None = None
    error_message: str | None = None


_UPDATE_FIELDS: dict[str, str] = {
    "content": "content",
    "labels": "labels",
    "bytesProcessed": "bytes_processed",
}


def decode_job_update(response: Any, query_id: str) -> QueryResult:
    """Decode a job update whose fields are individually JSON-encoded.

    Raises JobResponseError when the payload is not a mapping or a field
    cannot be decoded.
    """
    if not isinstance(response, dict):
        msg = f"Expected a mapping for job update, got {type(response).__name__}"
        raise JobResponseError(msg)

    decoded: dict[str, Any] = {}
    for wire_name, field_name in _UPDATE_FIELDS.items():
        raw = response.get(wire_name)
        if raw is None:
            continue
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                decoded[field_name] = json.loads(raw)
            except ValueError as e:
                msg = f"Cannot decode '{wire_name}' in job update: {e}"
                raise JobResponseError(msg) from e
        else:
            decoded[field_name] = raw

    decoded.setdefault("content", [])
    decoded.setdefault("labels", [])
    try:
        return QueryResult(query_id=query_id, **decoded)
    except ValueError as e:
        msg = f"Invalid job update: {e}"
        raise JobResponseError(msg) from e
