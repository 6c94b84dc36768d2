"""Background loop driving the sampler."""

import logging
import threading
import time

from hostmetrics.sampler import Sampler
from hostmetrics.store import SnapshotStore

logger = logging.getLogger(__name__)

MIN_INTERVAL = 0.1
# How often a sleeping loop checks the caller's cancel event
CANCEL_POLL = 0.05


class SchedulingLoop:
    """
    Runs ``sampler.tick()`` and publishes the result at a fixed interval.

    Runs in a separate daemon thread. The loop exits when either stop() is
    called or the cancellation event passed at construction is set by its
    owner (for example a signal handler).
    """

    def __init__(
        self,
        sampler: Sampler,
        store: SnapshotStore,
        interval: float = 1.0,
        cancel: threading.Event | None = None,
    ) -> None:
        """
        Initialize the SchedulingLoop.

        Args:
            sampler: Sampler to tick; only this loop's thread touches it.
            store: Store receiving every Snapshot.
            interval: Seconds between ticks. Values below 0.1 are raised to 0.1.
            cancel: Event owned by the caller that stops the loop when set.
                The loop only reads it and never clears it.
        """
        self._sampler = sampler
        self._store = store
        self._interval = max(MIN_INTERVAL, interval)
        self._stop_event = threading.Event()
        self._cancel = cancel if cancel is not None else threading.Event()
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def ticks(self) -> int:
        """Number of ticks completed since construction."""
        return self._ticks

    @property
    def is_running(self) -> bool:
        """Check if the loop thread is running."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """Start the loop thread; no-op if already running."""
        with self._state_lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                daemon=True,
                name="SchedulingLoop",
            )
            self._thread.start()
        logger.debug("Scheduling loop started, interval %.3fs", self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """
        Stop the loop and wait for its thread to finish.

        The in-flight tick, if any, completes first; no tick runs after this
        returns (unless a timeout is given and expires).

        Args:
            timeout: How long to wait for the thread (seconds). None waits
                indefinitely.
        """
        # Held across the join so a concurrent start() cannot clear the event
        with self._state_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            if thread is not threading.current_thread():
                thread.join(timeout=timeout)
            if not thread.is_alive():
                self._thread = None
        logger.debug("Scheduling loop stopped after %d ticks", self._ticks)

    def wait_for_first_tick(self, timeout: float | None = None) -> bool:
        """Block until the first Snapshot has been published."""
        return self._store.wait_for_publish(timeout)

    def run_once(self) -> None:
        """Run a single tick and publish it."""
        snapshot = self._sampler.tick()
        self._store.publish(snapshot)
        self._ticks += 1

    def _run(self) -> None:
        """Main loop running in the background thread."""
        while not self._should_exit():
            try:
                self.run_once()
            except Exception:
                # Read failures never raise; anything else is a bug worth logging
                logger.exception("Unexpected error during sampling tick")

            self._sleep()

    def _should_exit(self) -> bool:
        return self._stop_event.is_set() or self._cancel.is_set()

    def _sleep(self) -> None:
        """Wait for the interval, waking early on stop() or cancellation."""
        deadline = time.monotonic() + self._interval
        while not self._should_exit():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self._stop_event.wait(timeout=min(remaining, CANCEL_POLL))
