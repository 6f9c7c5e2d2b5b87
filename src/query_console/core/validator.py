"""Debounced dry-run validation of the query being edited."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from query_console.core.diagnostics import parse_diagnostic, split_lines
from query_console.core.logging import get_logger
from query_console.core.models import JobState, QueryRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from query_console.core.editor import EditorSurface
    from query_console.core.polling import JobHandle, PollingClient
    from query_console.core.scheduling import Scheduler, TimerHandle

DEFAULT_DEBOUNCE_MS = 1500


class DebouncedValidator:
    """Validate the editor text once typing pauses.

    Every edit clears the markers immediately and restarts a single timer.
    When the timer fires the text is sent as a dry run; a failed dry run is
    parsed into at most one diagnostic, which replaces the marker set.
    Only the most recent dry run may touch the markers.
    """

    def __init__(
        self,
        surface: EditorSurface,
        client: PollingClient,
        scheduler: Scheduler,
        *,
        job_config: dict[str, Any] | None = None,
        delay_ms: int = DEFAULT_DEBOUNCE_MS,
        poll_interval_ms: int | None = None,
        on_stale: Callable[[], None] | None = None,
    ) -> None:
        self._surface = surface
        self._client = client
        self._scheduler = scheduler
        self.job_config = dict(job_config or {})
        self.delay_ms = delay_ms
        self.poll_interval_ms = poll_interval_ms
        self._on_stale = on_stale
        self._timer: TimerHandle | None = None
        self._dry_run: JobHandle | None = None
        self._generation = 0

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    @property
    def validating(self) -> bool:
        return self._dry_run is not None

    def on_edit(self) -> None:
        log = get_logger(__name__)
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            if self._on_stale is not None:
                self._on_stale()
        self._cancel_dry_run()
        self._timer = self._scheduler.call_later(self.delay_ms, self._fire)
        log.debug("validation scheduled", delay_ms=self.delay_ms)
        self._surface.clear_diagnostics()

    def validate_now(self) -> None:
        """Issue a dry run for the current text, unless it is empty."""
        log = get_logger(__name__)
        query = self._surface.get_current_text()
        if not query:
            return

        self._cancel_dry_run()
        generation = self._generation
        settled = False

        def on_update(state: JobState, meta: dict[str, Any], response: Any) -> None:
            nonlocal settled
            if generation != self._generation or state is JobState.PENDING:
                return
            settled = True
            self._dry_run = None
            if state is JobState.FAIL:
                self._apply_error(response)

        request = QueryRequest.validation(query, self.job_config)
        log.debug("dry run requested", chars=len(query))
        handle = self._client.request(request.to_wire(), on_update, self.poll_interval_ms)
        if not settled and generation == self._generation:
            self._dry_run = handle

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._cancel_dry_run()

    def _fire(self) -> None:
        self._timer = None
        self.validate_now()

    def _cancel_dry_run(self) -> None:
        self._generation += 1
        if self._dry_run is not None:
            self._dry_run.cancel()
            self._dry_run = None

    def _apply_error(self, response: Any) -> None:
        log = get_logger(__name__)
        lines = split_lines(self._surface.get_current_text())
        diagnostic = parse_diagnostic(response, lines)
        if diagnostic is None:
            log.debug("dry run error not positioned", error=str(response)[:200])
            return
        log.debug(
            "diagnostic found",
            line=diagnostic.start_line,
            column=diagnostic.start_column,
        )
        self._surface.set_diagnostics([diagnostic])
