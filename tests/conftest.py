"""Shared test fixtures for Query Console."""

import asyncio
import json
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from query_console.cli.main import app
from query_console.core.editor import BufferEditor
from query_console.core.models import JobState
from query_console.core.store import InMemoryResultStore

_ENV_VARS = (
    "QUERY_CONSOLE_URL",
    "QUERY_CONSOLE_TIMEOUT",
    "QUERY_CONSOLE_PROFILE",
    "QUERY_CONSOLE_SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the user's environment and config file out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "query_console.core.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.toml"
    )


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class ManualTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0
        self.timers = []

    def call_later(self, delay_ms, callback):
        timer = ManualTimer(self.now + delay_ms, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = sorted(
                (t for t in self.pending if t.due <= target), key=lambda t: t.due
            )
            if not due:
                break
            timer = due[0]
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target


class FakeJob:
    """JobHandle that lets a test push updates the way a polling client would."""

    def __init__(self, body, on_update, poll_interval_ms):
        self.body = body
        self.on_update = on_update
        self.poll_interval_ms = poll_interval_ms
        self.cancel_calls = 0
        self.cancelled = False
        self.finished = False

    @property
    def query(self):
        return self.body["query"]

    @property
    def dry_run(self):
        return self.body["dryRunOnly"]

    def cancel(self):
        self.cancel_calls += 1
        self.cancelled = True

    def emit(self, state, response=None, meta=None):
        """Deliver an update unless the job was cancelled or already settled."""
        if self.cancelled or self.finished:
            return False
        if state is not JobState.PENDING:
            self.finished = True
        self.on_update(state, meta or {}, response)
        return True

    def emit_late(self, state, response=None, meta=None):
        """Deliver an update regardless of cancellation (a racing callback)."""
        self.on_update(state, meta or {}, response)


class FakePollingClient:
    def __init__(self):
        self.jobs = []

    def request(self, body, on_update, poll_interval_ms=None):
        job = FakeJob(body, on_update, poll_interval_ms)
        self.jobs.append(job)
        return job

    @property
    def dry_runs(self):
        return [j for j in self.jobs if j.dry_run]

    @property
    def submissions(self):
        return [j for j in self.jobs if not j.dry_run]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def client():
    return FakePollingClient()


@pytest.fixture
def store():
    return InMemoryResultStore()


@pytest.fixture
def editor():
    return BufferEditor("SELECT * FROM dataset.table")


def page(content=None, labels=None, bytes_processed=None):
    """Build a job update whose fields are JSON-encoded strings."""
    update = {
        "content": json.dumps(content if content is not None else []),
        "labels": json.dumps(labels if labels is not None else []),
    }
    if bytes_processed is not None:
        update["bytesProcessed"] = json.dumps(bytes_processed)
    return update


@pytest.fixture
def make_page():
    return page


class ScriptedClient(FakePollingClient):
    """PollingClient that replays canned updates on the running event loop.

    Dry runs and submissions each follow their own script of
    (state, response) pairs.
    """

    def __init__(self, dry_run=None, submit=None):
        super().__init__()
        self.scripts = {
            True: dry_run if dry_run is not None else [(JobState.DONE, None)],
            False: submit if submit is not None else [(JobState.DONE, None)],
        }

    def request(self, body, on_update, poll_interval_ms=None):
        job = super().request(body, on_update, poll_interval_ms)
        loop = asyncio.get_running_loop()
        for state, response in self.scripts[body["dryRunOnly"]]:
            loop.call_soon(job.emit, state, response)
        return job


@pytest.fixture
def scripted_client():
    return ScriptedClient
