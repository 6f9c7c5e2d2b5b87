"""Tests for the query job controller."""

import pytest

from query_console.core.controller import (
    TRANSITIONS,
    Action,
    JobController,
    Trigger,
    resolve,
)
from query_console.core.models import ButtonState, JobState


@pytest.fixture
def controller(editor, client, store, scheduler):
    return JobController(
        "q1",
        editor,
        client,
        store,
        scheduler,
        job_config={"location": "US"},
        poll_interval_ms=2000,
        error_reset_ms=2000,
    )


@pytest.mark.unit
class TestTransitions:
    @pytest.mark.parametrize(
        ("state", "trigger", "expected"),
        [
            (ButtonState.READY, Trigger.PRESS, (Action.SUBMIT, ButtonState.PENDING)),
            (ButtonState.ERROR, Trigger.PRESS, (Action.SUBMIT, ButtonState.PENDING)),
            (ButtonState.PENDING, Trigger.PRESS, (Action.CANCEL, ButtonState.READY)),
            (ButtonState.PENDING, Trigger.PAGE, (Action.APPLY_PAGE, ButtonState.PENDING)),
            (ButtonState.PENDING, Trigger.FAIL, (Action.SHOW_ERROR, ButtonState.ERROR)),
            (ButtonState.PENDING, Trigger.DONE, (Action.SETTLE, ButtonState.READY)),
            (ButtonState.ERROR, Trigger.RESET, (Action.RESET, ButtonState.READY)),
        ],
    )
    def test_table(self, state, trigger, expected):
        assert resolve(state, trigger) == expected

    @pytest.mark.parametrize(
        ("state", "trigger"),
        [
            (ButtonState.READY, Trigger.PAGE),
            (ButtonState.READY, Trigger.DONE),
            (ButtonState.READY, Trigger.RESET),
            (ButtonState.ERROR, Trigger.FAIL),
            (ButtonState.PENDING, Trigger.RESET),
        ],
    )
    def test_unknown_pairs_ignored(self, state, trigger):
        assert resolve(state, trigger) == (Action.IGNORE, state)

    def test_table_size(self):
        assert len(TRANSITIONS) == 7


@pytest.mark.unit
class TestSubmit:
    def test_submit_from_ready(self, controller, client, store):
        assert controller.submit() is Action.SUBMIT
        assert controller.button_state is ButtonState.PENDING
        assert len(client.submissions) == 1
        job = client.submissions[0]
        assert job.body == {
            "query": "SELECT * FROM dataset.table",
            "jobConfig": {"location": "US"},
            "dryRunOnly": False,
        }
        assert job.poll_interval_ms == 2000
        assert "q1" in store
        assert store.get("q1") is None

    def test_submit_while_pending_cancels(self, controller, client):
        controller.submit()
        assert controller.submit() is Action.CANCEL
        assert len(client.jobs) == 1
        assert client.jobs[0].cancel_calls == 1
        assert controller.button_state is ButtonState.READY
        assert not controller.job_active

    def test_submit_clears_previous_fields(self, controller, client, make_page):
        controller.submit()
        client.jobs[0].emit(JobState.PENDING, make_page(bytes_processed=10))
        client.jobs[0].emit(JobState.FAIL, "boom")
        controller.submit()
        assert controller.bytes_processed is None
        assert controller.error_message is None

    def test_submit_clears_stored_result(self, controller, client, store, make_page):
        controller.submit()
        client.jobs[0].emit(JobState.PENDING, make_page([[1]], ["a"]))
        client.jobs[0].emit(JobState.DONE)
        assert store.get("q1") is not None
        controller.submit()
        assert store.get("q1") is None


@pytest.mark.unit
class TestUpdates:
    def test_pages_pushed_in_order(self, controller, client, store, make_page):
        seen = []
        store_push = store.push_result

        def record(query_id, result):
            seen.append(result.content)
            store_push(query_id, result)

        store.push_result = record
        controller.submit()
        job = client.jobs[0]
        job.emit(JobState.PENDING, make_page([[1]], ["n"], 100))
        job.emit(JobState.PENDING, make_page([[1], [2]], ["n"], 200))
        assert seen == [[[1]], [[1], [2]]]
        assert controller.bytes_processed == 200
        assert store.get("q1").query_id == "q1"
        assert controller.button_state is ButtonState.PENDING

    def test_page_without_bytes_keeps_previous(self, controller, client, make_page):
        controller.submit()
        client.jobs[0].emit(JobState.PENDING, make_page(bytes_processed=100))
        client.jobs[0].emit(JobState.PENDING, make_page())
        assert controller.bytes_processed == 100

    def test_done_settles(self, controller, client):
        controller.submit()
        client.jobs[0].emit(JobState.DONE)
        assert controller.button_state is ButtonState.READY
        assert not controller.job_active

    def test_fail_shows_error(self, controller, client):
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, "Syntax error: x at [1:0]")
        assert controller.button_state is ButtonState.ERROR
        assert controller.error_message == "Syntax error: x at [1:0]"
        assert not controller.job_active

    def test_fail_without_message(self, controller, client):
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, None)
        assert controller.error_message == ""

    def test_undecodable_page_fails_job(self, controller, client, store):
        controller.submit()
        job = client.jobs[0]
        job.emit(JobState.PENDING, {"content": "not json"})
        assert job.cancel_calls == 1
        assert controller.button_state is ButtonState.ERROR
        assert "Cannot decode 'content'" in controller.error_message
        assert store.get("q1") is None

    def test_undecodable_page_during_request(self, editor, client, store, scheduler):
        class EagerClient:
            def __init__(self):
                self.jobs = []

            def request(self, body, on_update, poll_interval_ms=None):
                job = client.request(body, on_update, poll_interval_ms)
                self.jobs.append(job)
                job.emit(JobState.PENDING, {"content": "not json"})
                return job

        eager = EagerClient()
        controller = JobController("q1", editor, eager, store, scheduler)
        controller.submit()
        assert controller.button_state is ButtonState.ERROR
        assert eager.jobs[0].cancel_calls == 1
        assert not controller.job_active

    def test_updates_after_cancel_ignored(self, controller, client, store, make_page):
        controller.submit()
        job = client.jobs[0]
        controller.cancel()
        job.emit_late(JobState.PENDING, make_page([[1]], ["a"], 5))
        job.emit_late(JobState.FAIL, "late")
        assert controller.button_state is ButtonState.READY
        assert controller.bytes_processed is None
        assert controller.error_message is None
        assert store.get("q1") is None

    def test_updates_from_previous_submission_ignored(self, controller, client):
        controller.submit()
        first = client.jobs[0]
        first.emit(JobState.FAIL, "first")
        controller.submit()
        first.emit_late(JobState.DONE)
        assert controller.button_state is ButtonState.PENDING


@pytest.mark.unit
class TestCancel:
    def test_cancel_without_job(self, controller):
        assert controller.cancel() is False
        assert controller.button_state is ButtonState.READY

    def test_cancel_after_done_is_noop(self, controller, client):
        controller.submit()
        client.jobs[0].emit(JobState.DONE)
        epoch = controller.epoch
        assert controller.cancel() is False
        assert client.jobs[0].cancel_calls == 0
        assert controller.button_state is ButtonState.READY
        assert controller.epoch == epoch

    def test_cancel_after_fail_keeps_error(self, controller, client):
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, "boom")
        assert controller.cancel() is False
        assert controller.button_state is ButtonState.ERROR

    def test_cancel_bumps_epoch(self, controller):
        controller.submit()
        epoch = controller.epoch
        assert controller.cancel() is True
        assert controller.epoch == epoch + 1


@pytest.mark.unit
class TestErrorReset:
    def test_auto_reset(self, controller, client, scheduler):
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, "boom")
        scheduler.advance(1999)
        assert controller.button_state is ButtonState.ERROR
        scheduler.advance(1)
        assert controller.button_state is ButtonState.READY
        assert controller.error_message == "boom"

    def test_resubmit_before_reset_not_clobbered(self, controller, client, scheduler):
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, "boom")
        controller.submit()
        assert controller.button_state is ButtonState.PENDING
        scheduler.advance(2000)
        assert controller.button_state is ButtonState.PENDING

    def test_submit_fail_submit_done_matches_submit_done(
        self, editor, client, store, scheduler
    ):
        def make():
            return JobController("q", editor, client, store, scheduler, error_reset_ms=2000)

        raced = make()
        raced.submit()
        client.jobs[-1].emit(JobState.FAIL, "boom")
        raced.submit()
        client.jobs[-1].emit(JobState.DONE)

        plain = make()
        plain.submit()
        client.jobs[-1].emit(JobState.DONE)

        scheduler.advance(5000)
        assert raced.snapshot().button_state is ButtonState.READY
        assert raced.snapshot() == plain.snapshot()

    def test_stale_timer_after_second_failure(self, controller, client, scheduler):
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, "first")
        scheduler.advance(1500)
        controller.submit()
        client.jobs[1].emit(JobState.FAIL, "second")
        scheduler.advance(600)
        assert controller.button_state is ButtonState.ERROR
        scheduler.advance(1400)
        assert controller.button_state is ButtonState.READY


@pytest.mark.unit
class TestListeners:
    def test_snapshots_delivered(self, controller, client):
        states = []
        controller.subscribe(lambda snap: states.append(snap.button_state))
        controller.submit()
        client.jobs[0].emit(JobState.DONE)
        assert states == [ButtonState.PENDING, ButtonState.READY]

    def test_unsubscribe(self, controller):
        states = []
        unsubscribe = controller.subscribe(lambda snap: states.append(snap))
        unsubscribe()
        unsubscribe()
        controller.submit()
        assert states == []

    def test_clear_error_message(self, controller, client):
        snaps = []
        controller.submit()
        client.jobs[0].emit(JobState.FAIL, "boom")
        controller.subscribe(snaps.append)
        controller.clear_error_message()
        controller.clear_error_message()
        assert controller.error_message is None
        assert len(snaps) == 1

    def test_close_cancels_job_and_timer(self, controller, client, scheduler):
        controller.submit()
        controller.close()
        assert client.jobs[0].cancelled
        assert scheduler.pending == []
