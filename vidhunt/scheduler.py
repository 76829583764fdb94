"""
Processing Scheduler

Walks a worklist one item per tick on a fixed cadence. The scheduler is
an explicit state object: `tick()` can be driven by `run()` or called
directly. Each item is isolated, so a failure is recorded and the cursor
still advances.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import PROCESSING_INTERVAL_SECONDS
from .errors import (
    ClassificationError,
    DiscoveryError,
    IndexConsistencyWarning,
    PersistenceError,
)
from .models import ItemResult, WorkItem

logger = logging.getLogger(__name__)

# Granularity at which run() notices pause, resume and stop while waiting
WAIT_SLICE_SECONDS = 0.05


class SchedulerState:
    """Lifecycle states of a ProcessingScheduler."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"

    FINISHED = (STOPPED, COMPLETED)


class SchedulerStateError(RuntimeError):
    """An operation was called in a state that does not allow it."""
    pass


class ProcessingScheduler:
    """
    Cadenced single-pass processing of a channel worklist.

    Args:
        process_item: Called with each channel ID; its return value's
            `title` attribute (if any) is kept in the run report
        interval: Minimum seconds between the starts of two items
    """

    def __init__(
        self,
        process_item: Callable[[str], Any],
        interval: float = PROCESSING_INTERVAL_SECONDS,
    ):
        self.process_item = process_item
        self.interval = max(0.0, interval)

        self.state = SchedulerState.IDLE
        self.worklist: List[str] = []
        self.cursor = 0
        self.results: List[ItemResult] = []

        self._lock = threading.Lock()
        self._busy = False
        # Set from signal handlers, applied by run() between ticks
        self._stop_requested = False
        self._toggle_requested = False

    # ------------------------------------------------------------------
    # CONTROL
    # ------------------------------------------------------------------

    def start(self, worklist: Sequence[str]):
        """Begin a new pass over the worklist from position 0."""
        with self._lock:
            if self.state in (SchedulerState.RUNNING, SchedulerState.PAUSED):
                raise SchedulerStateError(f"Cannot start while {self.state}")
            self.worklist = list(worklist)
            self.cursor = 0
            self.results = []
            self.state = SchedulerState.RUNNING
            self._stop_requested = False
            self._toggle_requested = False
        logger.info(f"Processing started: {len(self.worklist)} channels")

    def pause(self):
        with self._lock:
            if self.state != SchedulerState.RUNNING:
                return
            self.state = SchedulerState.PAUSED
        logger.info(f"Processing paused at {self.cursor}/{len(self.worklist)}")

    def resume(self):
        with self._lock:
            if self.state != SchedulerState.PAUSED:
                return
            self.state = SchedulerState.RUNNING
        logger.info(f"Processing resumed at {self.cursor}/{len(self.worklist)}")

    def toggle_pause(self):
        if self.state == SchedulerState.PAUSED:
            self.resume()
        else:
            self.pause()

    def stop(self):
        """Abandon the run. An in-flight item is allowed to finish."""
        with self._lock:
            if self.state in SchedulerState.FINISHED:
                return
            self.state = SchedulerState.STOPPED
        logger.info(f"Processing stopped at {self.cursor}/{len(self.worklist)}")

    def request_stop(self):
        """
        Ask run() to stop at its next check.

        Safe to call from a signal handler: it takes no lock, so it cannot
        block on a lock the interrupted code already holds.
        """
        self._stop_requested = True

    def request_toggle_pause(self):
        """Ask run() to toggle pause at its next check. Signal-handler safe."""
        self._toggle_requested = True

    def _apply_requests(self):
        if self._stop_requested:
            self._stop_requested = False
            self.stop()
        if self._toggle_requested:
            self._toggle_requested = False
            self.toggle_pause()

    # ------------------------------------------------------------------
    # PROCESSING
    # ------------------------------------------------------------------

    def tick(self) -> Optional[ItemResult]:
        """
        Process the item at the cursor, if the scheduler is running and
        not already busy with another item.

        Returns:
            The item's result, or None if nothing was processed
        """
        with self._lock:
            if self.state != SchedulerState.RUNNING or self._busy:
                return None
            if self.cursor >= len(self.worklist):
                self.state = SchedulerState.COMPLETED
                item = None
            else:
                item = WorkItem(identifier=self.worklist[self.cursor], position=self.cursor)
                self._busy = True

        if item is None:
            logger.info(f"Processing completed: {self._summary()}")
            return None

        try:
            result = self._run_item(item)
        finally:
            with self._lock:
                self.cursor = item.position + 1
                self._busy = False

        self.results.append(result)
        return result

    def _run_item(self, item: WorkItem) -> ItemResult:
        channel_id = item.identifier
        label = f"[{item.position + 1}/{len(self.worklist)}] {channel_id}"

        try:
            outcome = self.process_item(channel_id)
        except IndexConsistencyWarning as e:
            logger.warning(f"{label}: {e}")
            title = e.entry.title if e.entry is not None else None
            return ItemResult(channel_id, item.position, ItemResult.WARNING, str(e), title=title)
        except (DiscoveryError, ClassificationError, PersistenceError) as e:
            logger.error(f"{label}: {e}")
            return ItemResult(channel_id, item.position, ItemResult.FAILED, str(e))
        except Exception as e:
            logger.exception(f"{label}: unexpected error")
            return ItemResult(channel_id, item.position, ItemResult.FAILED, str(e))

        title = getattr(outcome, 'title', None)
        logger.info(f"{label}: processed {title or ''}".rstrip())
        return ItemResult(channel_id, item.position, ItemResult.SUCCESS, title=title)

    def run(self, worklist: Optional[Sequence[str]] = None) -> List[ItemResult]:
        """
        Drive ticks until the run completes or is stopped.

        The next tick is scheduled only after the current item settles,
        `interval` seconds after that item started. Pausing and resuming
        inside that gap does not shorten it. While paused the loop waits
        for resume() or stop().

        Args:
            worklist: Start a new pass over it first (optional)

        Returns:
            The run report

        Raises:
            SchedulerStateError: If there is no worklist to run
        """
        if worklist is not None:
            self.start(worklist)
        elif self.state == SchedulerState.IDLE:
            raise SchedulerStateError("Nothing to run: call start() or pass a worklist")

        while True:
            self._apply_requests()
            if self.state in SchedulerState.FINISHED:
                break
            if self.state == SchedulerState.PAUSED:
                time.sleep(WAIT_SLICE_SECONDS)
                continue

            started = time.monotonic()
            result = self.tick()
            if result is None:
                if self.state == SchedulerState.RUNNING:
                    # Another caller is processing an item
                    time.sleep(WAIT_SLICE_SECONDS)
                continue

            if self.cursor < len(self.worklist):
                self._wait_until(started + self.interval)

        return self.results

    def _wait_until(self, deadline: float):
        """Sleep until `deadline` (monotonic), or until the run is stopped."""
        while True:
            self._apply_requests()
            if self.state == SchedulerState.STOPPED:
                return
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(remaining, WAIT_SLICE_SECONDS))

    # ------------------------------------------------------------------
    # REPORTING
    # ------------------------------------------------------------------

    def progress(self) -> Dict[str, int]:
        succeeded = sum(1 for r in self.results if r.ok)
        return {
            'processed': len(self.results),
            'total': len(self.worklist),
            'succeeded': succeeded,
            'failed': len(self.results) - succeeded,
        }

    def _summary(self) -> str:
        p = self.progress()
        return f"{p['succeeded']} succeeded, {p['failed']} failed of {p['total']}"
