"""Background evaluation service for the status scheduler."""

import logging
import random
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config import Config
from .errors import ConfigParseError, ConfigReadError, RemoteError
from .loader import reload_schedule
from .locales import weekday_name, weekday_table
from .reconcile import Outcome, RuntimeState, StatusRemote, reconcile
from .schedule import ExpandedWindow, Schedule, describe, expand, find_next, resolve_active
from .ticker import TaskScheduler

logger = logging.getLogger(__name__)


@dataclass
class ServiceState:
    """Observable service state used by the web API and dashboard."""
    cycles: int = 0
    last_cycle_ts: float = 0.0
    last_outcome: str = ""
    expected_status_id: str = ""
    last_set_status_id: Optional[str] = None
    assertive_counter: int = 0
    schedule_items: int = 0
    last_error: str = ""


def _window_json(window: Optional[ExpandedWindow]) -> Optional[Dict[str, Any]]:
    if window is None:
        return None
    return {
        "id": window.id,
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "icon": window.icon,
        "messages": list(window.messages),
        "do_not_disturb": window.do_not_disturb,
        "assertive": window.assertive,
    }


class StatusSchedulerService:
    """Owns the schedule, the runtime state, and the evaluation loop.

    Each service has its own `RuntimeState`, so several services (one per
    schedule) can live in one process without sharing anything.
    """

    def __init__(
        self,
        remote: StatusRemote,
        schedule_path: Optional[str] = None,
        locale: Optional[str] = None,
        lookback_days: Optional[int] = None,
        interval_seconds: Optional[int] = None,
        crash_on_exception: Optional[bool] = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize components; unset arguments fall back to `Config`."""
        self.config = Config
        self.remote = remote
        self.schedule_path = schedule_path or self.config.SCHEDULE_PATH
        self.weekdays = weekday_table(locale or self.config.LOCALE)
        self.lookback_days = lookback_days or self.config.MAX_DAYSPAN
        self.runtime = RuntimeState()
        self._clock = clock
        self._rng = rng or random.Random()
        self._state_lock = threading.Lock()
        self.state = ServiceState()
        # Last schedule a cycle ran on; shared with preview under _state_lock
        self._schedule: Optional[Schedule] = None
        self.scheduler = TaskScheduler(
            interval_seconds or self.config.INTERVAL_SECONDS,
            self.run_cycle,
            crash_on_exception=self.config.CRASH_ON_EXCEPTION if crash_on_exception is None else crash_on_exception,
            clock=clock,
        )

    # Public API
    def start(self) -> None:
        """Start the background loop (first cycle runs immediately)."""
        self.scheduler.start()

    def stop(self) -> None:
        """Request shutdown; an in-flight cycle is allowed to finish."""
        self.scheduler.stop()

    def get_status(self) -> ServiceState:
        """Return a snapshot of the current service state."""
        with self._state_lock:
            return replace(self.state)

    def run_cycle(self) -> Optional[Outcome]:
        """Evaluate the schedule once and reconcile the remote status.

        Returns:
          The cycle outcome, or None when a remote call failed (the cycle is
          retried on the next tick with the cache unchanged).

        Raises:
          ConfigReadError, ConfigParseError: no schedule has been loaded yet.
        """
        now = self._clock()
        try:
            schedule, changed = reload_schedule(self.schedule_path, self.runtime, self.weekdays, self.lookback_days)
        except (ConfigReadError, ConfigParseError) as exc:
            if self.runtime.schedule is None:
                self._record(error=str(exc))
                raise
            logger.warning("schedule reload failed, keeping the previous schedule: %s", exc)
            schedule, changed = self.runtime.schedule, False
        with self._state_lock:
            self._schedule = schedule

        if changed:
            # Unknown remote state: check it again on this cycle
            self.runtime.last_set_status_id = None

        windows, recognized_icons = expand(schedule.entries, schedule.settings, self.lookback_days, now)
        weekday = weekday_name(self.weekdays, now)
        resolved = resolve_active(windows, now, weekday, self._rng)
        logger.debug("expected status at %s (%s): %s", now.isoformat(timespec="seconds"), weekday, describe(resolved))

        try:
            outcome = reconcile(
                resolved, schedule.settings, self.runtime, recognized_icons, self.remote,
                now, windows=windows, weekday=weekday,
            )
        except RemoteError as exc:
            logger.error("remote status update failed for [%s], retrying next cycle: %s", describe(resolved), exc)
            self._record(expected=resolved.id, items=len(schedule.entries), error=str(exc))
            return None
        self._record(expected=resolved.id, items=len(schedule.entries), outcome=outcome.value)
        return outcome

    def preview(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Active and upcoming windows for `now` from the loaded schedule.

        Read-only: never touches the remote service or the runtime cache.
        """
        now = now or self._clock()
        with self._state_lock:
            schedule = self._schedule
        if schedule is None:
            return {"now": now.isoformat(), "active": None, "next": None, "next_in_ms": None}
        windows, _ = expand(schedule.entries, schedule.settings, self.lookback_days, now)
        weekday = weekday_name(self.weekdays, now)
        resolved = resolve_active(windows, now, weekday, random.Random())
        active = next((w for w in windows if w.id == resolved.id and w.contains(now)), None)
        nxt, ms_until = find_next(windows, now, weekday)
        return {
            "now": now.isoformat(),
            "weekday": weekday,
            "active": _window_json(active),
            "next": _window_json(nxt),
            "next_in_ms": ms_until,
        }

    # Internal
    def _record(self, expected: str = "", items: Optional[int] = None,
                outcome: str = "", error: str = "") -> None:
        with self._state_lock:
            self.state.cycles += 1
            self.state.last_cycle_ts = time.time()
            self.state.last_outcome = outcome or ("error" if error else "")
            self.state.expected_status_id = expected
            self.state.last_set_status_id = self.runtime.last_set_status_id
            self.state.assertive_counter = self.runtime.assertive_counter
            if items is not None:
                self.state.schedule_items = items
            self.state.last_error = error
