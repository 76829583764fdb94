"""Tests for the processing scheduler state machine."""

import threading
import time
from types import SimpleNamespace

import pytest

from vidhunt.errors import ClassificationError, IndexConsistencyWarning, PersistenceError
from vidhunt.models import ItemResult
from vidhunt.scheduler import ProcessingScheduler, SchedulerState, SchedulerStateError


class Recorder:
    """process_item double that records calls and can fail selected ids."""

    def __init__(self, failures=None):
        self.seen = []
        self.failures = failures or {}

    def __call__(self, channel_id):
        self.seen.append(channel_id)
        if channel_id in self.failures:
            raise self.failures[channel_id]
        return SimpleNamespace(title=f"Title {channel_id}")


class TestLifecycle:
    def test_starts_idle(self):
        assert ProcessingScheduler(Recorder()).state == SchedulerState.IDLE

    def test_tick_before_start_does_nothing(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=0)
        assert scheduler.tick() is None
        assert recorder.seen == []

    def test_ticks_until_completed(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=0)
        scheduler.start(["a", "b"])

        assert scheduler.tick().channel_id == "a"
        assert scheduler.tick().channel_id == "b"
        assert scheduler.state == SchedulerState.RUNNING
        assert scheduler.tick() is None
        assert scheduler.state == SchedulerState.COMPLETED
        assert recorder.seen == ["a", "b"]

    def test_empty_worklist_completes(self):
        scheduler = ProcessingScheduler(Recorder(), interval=0)
        assert scheduler.run([]) == []
        assert scheduler.state == SchedulerState.COMPLETED

    def test_run_before_start_raises(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=0)

        with pytest.raises(SchedulerStateError):
            scheduler.run()

        assert scheduler.state == SchedulerState.IDLE
        assert recorder.seen == []

    def test_cannot_start_twice(self):
        scheduler = ProcessingScheduler(Recorder(), interval=0)
        scheduler.start(["a"])
        with pytest.raises(SchedulerStateError):
            scheduler.start(["b"])

    def test_restart_after_completion(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=0)
        scheduler.run(["a"])
        scheduler.run(["b"])
        assert recorder.seen == ["a", "b"]
        assert scheduler.progress()["total"] == 1


class TestFaultIsolation:
    def test_failures_do_not_block_the_rest(self):
        recorder = Recorder(failures={
            "b": PersistenceError("write failed"),
            "c": RuntimeError("boom"),
        })
        scheduler = ProcessingScheduler(recorder, interval=0)

        results = scheduler.run(["a", "b", "c", "d"])

        assert recorder.seen == ["a", "b", "c", "d"]
        assert [r.status for r in results] == [
            ItemResult.SUCCESS, ItemResult.FAILED, ItemResult.FAILED, ItemResult.SUCCESS,
        ]
        assert results[1].message == "write failed"
        assert scheduler.progress() == {"processed": 4, "total": 4, "succeeded": 2, "failed": 2}

    def test_index_warning_counts_as_processed(self):
        recorder = Recorder(failures={"a": IndexConsistencyWarning("index lagging")})
        results = ProcessingScheduler(recorder, interval=0).run(["a"])
        assert results[0].status == ItemResult.WARNING
        assert results[0].ok

    def test_index_warning_keeps_title(self):
        entry = SimpleNamespace(channel_id="a", title="Channel A")
        recorder = Recorder(failures={"a": IndexConsistencyWarning("index lagging", entry=entry)})
        results = ProcessingScheduler(recorder, interval=0).run(["a"])
        assert results[0].status == ItemResult.WARNING
        assert results[0].title == "Channel A"

    def test_classification_error_escaping_is_a_failure(self):
        recorder = Recorder(failures={"a": ClassificationError("bad playlist")})
        results = ProcessingScheduler(recorder, interval=0).run(["a"])
        assert results[0].status == ItemResult.FAILED

    def test_titles_recorded(self):
        results = ProcessingScheduler(Recorder(), interval=0).run(["a"])
        assert results[0].title == "Title a"


class TestPauseResume:
    def test_pause_holds_cursor(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=0)
        scheduler.start(["a", "b", "c"])
        scheduler.tick()

        scheduler.pause()
        assert scheduler.state == SchedulerState.PAUSED
        assert scheduler.tick() is None
        assert scheduler.cursor == 1

        scheduler.resume()
        assert scheduler.tick().channel_id == "b"
        assert recorder.seen == ["a", "b"]

    def test_pause_during_item_advances_past_it(self):
        scheduler = None

        def pausing(channel_id):
            if channel_id == "a":
                scheduler.pause()
            return None

        scheduler = ProcessingScheduler(pausing, interval=0)
        scheduler.start(["a", "b"])
        scheduler.tick()

        assert scheduler.state == SchedulerState.PAUSED
        assert scheduler.cursor == 1
        scheduler.resume()
        assert scheduler.tick().channel_id == "b"

    def test_resume_only_from_paused(self):
        scheduler = ProcessingScheduler(Recorder(), interval=0)
        scheduler.resume()
        assert scheduler.state == SchedulerState.IDLE

    def test_toggle(self):
        scheduler = ProcessingScheduler(Recorder(), interval=0)
        scheduler.start(["a"])
        scheduler.toggle_pause()
        assert scheduler.state == SchedulerState.PAUSED
        scheduler.toggle_pause()
        assert scheduler.state == SchedulerState.RUNNING

    def test_run_waits_while_paused(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=0)
        scheduler.start(["a", "b"])
        scheduler.pause()

        runner = threading.Thread(target=scheduler.run)
        runner.start()
        runner.join(timeout=0.2)
        assert runner.is_alive()
        assert recorder.seen == []

        scheduler.resume()
        runner.join(timeout=5)
        assert not runner.is_alive()
        assert recorder.seen == ["a", "b"]
        assert scheduler.state == SchedulerState.COMPLETED


class TestStop:
    def test_stop_between_items(self):
        scheduler = None
        seen = []

        def stopping(channel_id):
            seen.append(channel_id)
            if channel_id == "b":
                scheduler.stop()

        scheduler = ProcessingScheduler(stopping, interval=0)
        results = scheduler.run(["a", "b", "c"])

        assert seen == ["a", "b"]
        assert len(results) == 2
        assert scheduler.state == SchedulerState.STOPPED

    def test_stop_interrupts_interval_wait(self):
        recorder = Recorder()
        scheduler = ProcessingScheduler(recorder, interval=60)
        scheduler.start(["a", "b"])

        runner = threading.Thread(target=scheduler.run)
        runner.start()
        runner.join(timeout=0.2)
        scheduler.stop()
        runner.join(timeout=5)

        assert not runner.is_alive()
        assert recorder.seen == ["a"]

    def test_stop_from_paused(self):
        scheduler = ProcessingScheduler(Recorder(), interval=0)
        scheduler.start(["a"])
        scheduler.pause()
        scheduler.stop()
        assert scheduler.state == SchedulerState.STOPPED
        assert scheduler.run() == []


class TestBusyGuard:
    def test_reentrant_tick_is_ignored(self):
        scheduler = None
        nested = []

        def reentrant(channel_id):
            nested.append(scheduler.tick())

        scheduler = ProcessingScheduler(reentrant, interval=0)
        scheduler.start(["a", "b"])
        scheduler.tick()

        assert nested == [None]
        assert scheduler.cursor == 1


class TestSignalRequests:
    def test_request_stop_while_lock_is_held(self):
        # A signal handler runs on the thread that may already hold the lock
        scheduler = ProcessingScheduler(Recorder(), interval=0)
        scheduler.start(["a", "b"])

        with scheduler._lock:
            scheduler.request_stop()

        assert scheduler.run() == []
        assert scheduler.state == SchedulerState.STOPPED

    def test_request_stop_during_item(self):
        scheduler = None
        seen = []

        def stopping(channel_id):
            seen.append(channel_id)
            scheduler.request_stop()

        scheduler = ProcessingScheduler(stopping, interval=0)
        results = scheduler.run(["a", "b", "c"])

        assert seen == ["a"]
        assert len(results) == 1
        assert scheduler.state == SchedulerState.STOPPED

    def test_request_toggle_pause(self):
        scheduler = None

        def pausing(channel_id):
            scheduler.request_toggle_pause()

        scheduler = ProcessingScheduler(pausing, interval=0)
        scheduler.start(["a", "b"])

        runner = threading.Thread(target=scheduler.run)
        runner.start()
        runner.join(timeout=0.3)
        assert runner.is_alive()
        assert scheduler.state == SchedulerState.PAUSED
        assert scheduler.cursor == 1

        scheduler.stop()
        runner.join(timeout=5)
        assert not runner.is_alive()


class TestCadence:
    def test_pause_resume_in_gap_keeps_interval(self):
        starts = []

        def timed(channel_id):
            starts.append(time.monotonic())

        scheduler = ProcessingScheduler(timed, interval=0.6)
        scheduler.start(["a", "b"])

        runner = threading.Thread(target=scheduler.run)
        runner.start()
        time.sleep(0.1)
        scheduler.pause()
        scheduler.resume()
        runner.join(timeout=5)

        assert not runner.is_alive()
        assert len(starts) == 2
        assert starts[1] - starts[0] >= 0.55
