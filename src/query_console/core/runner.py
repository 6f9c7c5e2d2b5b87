"""One-shot and long-running editor workflows used by the CLI.

Each workflow drives the same session, validator and controller an
interactive editor would, on top of the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from query_console.core.controller import JobController
from query_console.core.editor import BufferEditor
from query_console.core.logging import get_logger
from query_console.core.models import ButtonState, JobState
from query_console.core.scheduling import AsyncioScheduler
from query_console.core.session import QueryEditorSession
from query_console.core.store import InMemoryResultStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from query_console.core.config import SessionSettings
    from query_console.core.editor import FileEditor
    from query_console.core.models import Diagnostic, JobSnapshot, QueryResult
    from query_console.core.polling import JobHandle, PollingClient, UpdateCallback


class SettleWatcher:
    """PollingClient wrapper that signals when a request reaches FAIL or DONE."""

    def __init__(self, client: PollingClient) -> None:
        self._client = client
        self.settled = asyncio.Event()
        self.last_error: str | None = None
        self.requests = 0

    def request(
        self,
        body: dict[str, Any],
        on_update: UpdateCallback,
        poll_interval_ms: int | None = None,
    ) -> JobHandle:
        self.requests += 1
        self.settled.clear()

        def wrapped(state: JobState, meta: dict[str, Any], response: Any) -> None:
            if state is JobState.FAIL:
                self.last_error = "" if response is None else str(response)
            on_update(state, meta, response)
            if state is not JobState.PENDING:
                self.settled.set()

        return self._client.request(body, wrapped, poll_interval_ms)


@dataclass
class CheckOutcome:
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return not self.diagnostics and self.error_message is None


@dataclass
class RunOutcome:
    snapshot: JobSnapshot
    result: QueryResult | None = None
    pages: int = 0

    @property
    def failed(self) -> bool:
        return self.snapshot.button_state is ButtonState.ERROR


async def check_query(
    query: str,
    client: PollingClient,
    settings: SessionSettings,
) -> CheckOutcome:
    """Dry-run the query once and return the diagnostics it produced."""
    watcher = SettleWatcher(client)
    editor = BufferEditor(query)
    session = QueryEditorSession(
        f"check-{uuid.uuid4().hex[:8]}",
        watcher,
        InMemoryResultStore(),
        AsyncioScheduler(),
        settings,
    )
    await session.mount(editor)
    try:
        if watcher.requests:
            await watcher.settled.wait()
    finally:
        session.unmount()
    return CheckOutcome(diagnostics=editor.diagnostics, error_message=watcher.last_error)


async def run_query(
    query: str,
    client: PollingClient,
    settings: SessionSettings,
    on_snapshot: Callable[[JobSnapshot], None] | None = None,
) -> RunOutcome:
    """Submit the query and wait until it finishes or fails.

    Cancelling the calling task (Ctrl-C under asyncio.run) cancels the job.
    """
    log = get_logger(__name__)
    query_id = f"run-{uuid.uuid4().hex[:8]}"
    store = InMemoryResultStore()
    pages = 0
    settled = asyncio.Event()

    controller = JobController(
        query_id,
        BufferEditor(query),
        client,
        store,
        AsyncioScheduler(),
        job_config=settings.job_config,
        poll_interval_ms=settings.poll_interval_ms,
        error_reset_ms=settings.error_reset_ms,
    )

    def on_change(snapshot: JobSnapshot) -> None:
        nonlocal pages
        if snapshot.button_state is ButtonState.PENDING:
            if store.get(query_id) is not None:
                pages += 1
        else:
            settled.set()
        if on_snapshot is not None:
            on_snapshot(snapshot)

    controller.subscribe(on_change)
    controller.submit()
    try:
        await settled.wait()
    except asyncio.CancelledError:
        controller.cancel()
        log.info("query run interrupted", query_id=query_id)
        raise
    finally:
        snapshot = controller.snapshot()
        controller.close()

    return RunOutcome(snapshot=snapshot, result=store.get(query_id), pages=pages)


async def watch_file(
    editor: FileEditor,
    client: PollingClient,
    settings: SessionSettings,
    *,
    interval: float = 0.25,
    duration: float = 0,
) -> int:
    """Validate a query file whenever it changes.

    Returns the number of edits observed. duration=0 watches until cancelled.
    """
    log = get_logger(__name__)
    session = QueryEditorSession(
        f"watch-{uuid.uuid4().hex[:8]}",
        client,
        InMemoryResultStore(),
        AsyncioScheduler(),
        settings,
    )
    await session.mount(editor)
    loop = asyncio.get_running_loop()
    start = loop.time()
    edits = 0
    try:
        while duration <= 0 or loop.time() - start < duration:
            await asyncio.sleep(interval)
            if editor.reload():
                edits += 1
                log.debug("query file changed", path=str(editor.path), edits=edits)
                session.on_edit()
    finally:
        session.unmount()
    return edits
