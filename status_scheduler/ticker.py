"""Drift-free interval scheduling for the evaluation loop.

Ticks land on wall-clock boundaries (e.g. :00, :20 and :40 for a 20 second
interval) rather than `last_tick + interval`, so the time a cycle takes never
accumulates into drift.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from .config import validate_interval

logger = logging.getLogger(__name__)


def millis_until_next_tick(interval_seconds: int, now: datetime) -> int:
    """Milliseconds from `now` until the next aligned tick.

    The tick is the smallest multiple of `interval_seconds` past the start of
    the current minute that is not before `now`; it may be the start of the
    next minute. Rounded up so `now + result` never lands before the tick.
    """
    elapsed_us = now.second * 1_000_000 + now.microsecond
    step_us = interval_seconds * 1_000_000
    # Ceiling division, then back to an offset from the minute
    target_us = -(-elapsed_us // step_us) * step_us
    delay_us = target_us - elapsed_us
    return -(-delay_us // 1000)


class TaskScheduler:
    """Runs `task` on aligned ticks in a background thread.

    Exactly one cycle runs at a time. `stop()` cancels the pending wait; a
    cycle already running finishes first.
    """

    def __init__(
        self,
        interval_seconds: int,
        task: Callable[[], None],
        crash_on_exception: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Create a scheduler.

        Args:
          interval_seconds: Tick interval; must evenly divide 60.
          task: The cycle function.
          crash_on_exception: Re-raise cycle errors instead of logging and
            carrying on (used by tests to fail fast).
          clock: Source of the current local time.
        """
        self.interval_seconds = validate_interval(interval_seconds)
        self.crash_on_exception = crash_on_exception
        self._task = task
        self._clock = clock
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._cycle_lock = threading.Lock()
        self.next_tick_at: Optional[datetime] = None

    # Public API
    def execute_task(self) -> None:
        """Run a single cycle at the cycle boundary.

        Unexpected errors are logged, then swallowed or re-raised depending
        on `crash_on_exception`.
        """
        with self._cycle_lock:
            try:
                self._task()
            except Exception:
                logger.exception("scheduled cycle failed")
                if self.crash_on_exception:
                    raise

    def next_delay_ms(self) -> int:
        now = self._clock()
        delay_ms = millis_until_next_tick(self.interval_seconds, now)
        self.next_tick_at = now + timedelta(milliseconds=delay_ms)
        return delay_ms

    def run(self) -> None:
        """Loop until stopped: run a cycle, then wait for the next tick."""
        while not self._stop.is_set():
            self.execute_task()
            delay_ms = self.next_delay_ms()
            logger.debug("next task executing in approx %d ms", delay_ms)
            if self._stop.wait(delay_ms / 1000.0):
                break
        self.next_tick_at = None

    def start(self) -> "TaskScheduler":
        """Start the loop in a daemon thread; the first cycle runs at once."""
        if self.is_running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="status-scheduler", daemon=True)
        self._thread.start()
        logger.debug("task scheduler started")
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> "TaskScheduler":
        """Cancel the pending wait and wait for an in-flight cycle to end."""
        self._stop.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        logger.debug("task executor stopped")
        return self

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread:
            self._thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())
