"""Editor session: the owning context of one query editor.

The editor surface becomes available asynchronously, so a session is
created first and mounted once the surface is ready. Until then every
editor operation is rejected with EditorNotReadyError. Mounting builds the
validator and the job controller and runs the initial validation; unmounting
stops both and removes the editor's slot from the result store.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

from query_console.core.config import SessionSettings
from query_console.core.controller import Action, JobController
from query_console.core.exceptions import EditorNotReadyError, QueryConsoleError
from query_console.core.logging import get_logger
from query_console.core.validator import DebouncedValidator

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from query_console.core.editor import EditorSurface
    from query_console.core.polling import PollingClient
    from query_console.core.scheduling import Scheduler
    from query_console.core.store import ResultStore


class QueryEditorSession:
    def __init__(
        self,
        query_id: str,
        client: PollingClient,
        store: ResultStore,
        scheduler: Scheduler,
        settings: SessionSettings | None = None,
    ) -> None:
        self.query_id = query_id
        self._client = client
        self._store = store
        self._scheduler = scheduler
        self.settings = settings or SessionSettings()
        self._surface: EditorSurface | None = None
        self._validator: DebouncedValidator | None = None
        self._controller: JobController | None = None

    @property
    def mounted(self) -> bool:
        return self._surface is not None

    @property
    def surface(self) -> EditorSurface:
        self._require_mounted()
        assert self._surface is not None
        return self._surface

    @property
    def validator(self) -> DebouncedValidator:
        self._require_mounted()
        assert self._validator is not None
        return self._validator

    @property
    def controller(self) -> JobController:
        self._require_mounted()
        assert self._controller is not None
        return self._controller

    async def mount(
        self, surface: EditorSurface | Awaitable[EditorSurface]
    ) -> EditorSurface:
        """Attach the editor surface once it is ready and validate its text."""
        log = get_logger(__name__)
        if self.mounted:
            msg = f"Editor session {self.query_id} is already mounted"
            raise QueryConsoleError(msg)

        ready = await surface if inspect.isawaitable(surface) else surface

        controller = JobController(
            self.query_id,
            ready,
            self._client,
            self._store,
            self._scheduler,
            job_config=self.settings.job_config,
            poll_interval_ms=self.settings.poll_interval_ms,
            error_reset_ms=self.settings.error_reset_ms,
        )
        validator = DebouncedValidator(
            ready,
            self._client,
            self._scheduler,
            job_config=self.settings.job_config,
            delay_ms=self.settings.debounce_ms,
            poll_interval_ms=self.settings.validation_poll_interval_ms,
            on_stale=controller.clear_error_message,
        )
        self._surface = ready
        self._controller = controller
        self._validator = validator
        log.debug("editor mounted", query_id=self.query_id)

        validator.validate_now()
        return ready

    def on_edit(self) -> None:
        self.validator.on_edit()

    def press(self) -> Action:
        return self.controller.press()

    def submit(self) -> Action:
        return self.controller.submit()

    def cancel(self) -> bool:
        return self.controller.cancel()

    def unmount(self) -> None:
        log = get_logger(__name__)
        if self._validator is not None:
            self._validator.close()
        if self._controller is not None:
            self._controller.close()
        self._store.delete_entry(self.query_id)
        self._surface = None
        self._validator = None
        self._controller = None
        log.debug("editor unmounted", query_id=self.query_id)

    def _require_mounted(self) -> None:
        if self._surface is None:
            msg = f"Editor session {self.query_id} is not mounted yet"
            raise EditorNotReadyError(msg)
