"""Lifecycle of the query submitted from one editor.

One control toggles between submitting and cancelling, so every input is
resolved through a transition table keyed by (button state, trigger). Each
submission gets a new epoch; job updates and the error auto-reset timer
carry the epoch they were created under and are dropped once a newer
submission or a cancel has moved on.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from query_console.core.exceptions import JobResponseError
from query_console.core.logging import get_logger
from query_console.core.models import (
    ButtonState,
    JobSnapshot,
    JobState,
    QueryRequest,
    decode_job_update,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from query_console.core.editor import EditorSurface
    from query_console.core.polling import JobHandle, PollingClient
    from query_console.core.scheduling import Scheduler, TimerHandle
    from query_console.core.store import ResultStore

DEFAULT_POLL_INTERVAL_MS = 2000
DEFAULT_ERROR_RESET_MS = 2000


class Trigger(str, Enum):
    PRESS = "PRESS"
    PAGE = "PAGE"
    FAIL = "FAIL"
    DONE = "DONE"
    RESET = "RESET"


class Action(str, Enum):
    SUBMIT = "SUBMIT"
    CANCEL = "CANCEL"
    APPLY_PAGE = "APPLY_PAGE"
    SHOW_ERROR = "SHOW_ERROR"
    SETTLE = "SETTLE"
    RESET = "RESET"
    IGNORE = "IGNORE"


TRANSITIONS: dict[tuple[ButtonState, Trigger], tuple[Action, ButtonState]] = {
    (ButtonState.READY, Trigger.PRESS): (Action.SUBMIT, ButtonState.PENDING),
    (ButtonState.ERROR, Trigger.PRESS): (Action.SUBMIT, ButtonState.PENDING),
    (ButtonState.PENDING, Trigger.PRESS): (Action.CANCEL, ButtonState.READY),
    (ButtonState.PENDING, Trigger.PAGE): (Action.APPLY_PAGE, ButtonState.PENDING),
    (ButtonState.PENDING, Trigger.FAIL): (Action.SHOW_ERROR, ButtonState.ERROR),
    (ButtonState.PENDING, Trigger.DONE): (Action.SETTLE, ButtonState.READY),
    (ButtonState.ERROR, Trigger.RESET): (Action.RESET, ButtonState.READY),
}

_UPDATE_TRIGGERS: dict[JobState, Trigger] = {
    JobState.PENDING: Trigger.PAGE,
    JobState.FAIL: Trigger.FAIL,
    JobState.DONE: Trigger.DONE,
}


def resolve(state: ButtonState, trigger: Trigger) -> tuple[Action, ButtonState]:
    """Look up the action for a trigger; unknown pairs are ignored."""
    return TRANSITIONS.get((state, trigger), (Action.IGNORE, state))


class JobController:
    """Submit, poll and cancel the query of a single editor."""

    def __init__(
        self,
        query_id: str,
        surface: EditorSurface,
        client: PollingClient,
        store: ResultStore,
        scheduler: Scheduler,
        *,
        job_config: dict[str, Any] | None = None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        error_reset_ms: int = DEFAULT_ERROR_RESET_MS,
    ) -> None:
        self.query_id = query_id
        self._surface = surface
        self._client = client
        self._store = store
        self._scheduler = scheduler
        self.job_config = dict(job_config or {})
        self.poll_interval_ms = poll_interval_ms
        self.error_reset_ms = error_reset_ms

        self.button_state = ButtonState.READY
        self.bytes_processed: int | None = None
        self.error_message: str | None = None

        self._handle: JobHandle | None = None
        self._reset_timer: TimerHandle | None = None
        self._epoch = 0
        self._listeners: list[Callable[[JobSnapshot], None]] = []

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def job_active(self) -> bool:
        return self._handle is not None

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            button_state=self.button_state,
            bytes_processed=self.bytes_processed,
            error_message=self.error_message,
        )

    def subscribe(self, listener: Callable[[JobSnapshot], None]) -> Callable[[], None]:
        """Register a state listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def press(self) -> Action:
        """Handle the submit/cancel toggle and return the action taken."""
        action, _ = resolve(self.button_state, Trigger.PRESS)
        if action is Action.SUBMIT:
            self._start()
        elif action is Action.CANCEL:
            self.cancel()
        return action

    def submit(self) -> Action:
        """Submit the current text; while a job is pending this cancels it."""
        return self.press()

    def cancel(self) -> bool:
        """Stop the active job. Returns False when there was nothing to cancel."""
        if self._handle is None:
            return False
        log = get_logger(__name__)
        handle, self._handle = self._handle, None
        self._epoch += 1
        handle.cancel()
        self.button_state = ButtonState.READY
        log.info("query cancelled", query_id=self.query_id)
        self._notify()
        return True

    def clear_error_message(self) -> None:
        if self.error_message is not None:
            self.error_message = None
            self._notify()

    def close(self) -> None:
        self.cancel()
        self._cancel_reset_timer()
        self._listeners.clear()

    def _start(self) -> None:
        log = get_logger(__name__)
        self._epoch += 1
        epoch = self._epoch
        self._cancel_reset_timer()

        self._store.clear_result(self.query_id)
        query = self._surface.get_current_text()

        self.button_state = ButtonState.PENDING
        self.bytes_processed = None
        self.error_message = None
        self._notify()

        def on_update(state: JobState, meta: dict[str, Any], response: Any) -> None:
            self._on_update(epoch, state, response)

        request = QueryRequest.submission(query, self.job_config)
        log.info("query submitted", query_id=self.query_id, epoch=epoch)
        handle = self._client.request(
            request.to_wire(), on_update, self.poll_interval_ms
        )
        if epoch == self._epoch and self.button_state is ButtonState.PENDING:
            self._handle = handle
        else:
            # Settled or superseded while request() was still running.
            handle.cancel()

    def _on_update(self, epoch: int, state: JobState, response: Any) -> None:
        log = get_logger(__name__)
        if epoch != self._epoch:
            log.debug("stale job update dropped", query_id=self.query_id, state=state)
            return

        trigger = _UPDATE_TRIGGERS[state]
        result = None
        if trigger is Trigger.PAGE:
            try:
                result = decode_job_update(response, self.query_id)
            except JobResponseError as e:
                log.warning("undecodable job page", query_id=self.query_id, error=e.message)
                if self._handle is not None:
                    self._handle.cancel()
                trigger, response = Trigger.FAIL, e.message

        action, next_state = resolve(self.button_state, trigger)
        if action is Action.IGNORE:
            return

        if action is Action.APPLY_PAGE and result is not None:
            if result.bytes_processed is not None:
                self.bytes_processed = result.bytes_processed
            self._store.push_result(self.query_id, result)
        elif action is Action.SHOW_ERROR:
            self._handle = None
            self.error_message = "" if response is None else str(response)
            self._arm_reset(epoch)
            log.info("query failed", query_id=self.query_id, error=self.error_message)
        elif action is Action.SETTLE:
            self._handle = None
            log.info("query complete", query_id=self.query_id)

        self.button_state = next_state
        self._notify()

    def _arm_reset(self, epoch: int) -> None:
        self._cancel_reset_timer()

        def reset() -> None:
            self._reset_timer = None
            if epoch != self._epoch:
                return
            action, next_state = resolve(self.button_state, Trigger.RESET)
            if action is Action.RESET:
                self.button_state = next_state
                self._notify()

        self._reset_timer = self._scheduler.call_later(self.error_reset_ms, reset)

    def _cancel_reset_timer(self) -> None:
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
