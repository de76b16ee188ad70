"""Per-cycle decision of whether, and what, to publish remotely.

The reconciler compares the status the schedule expects with a small amount
of cached state and only talks to the remote service when the cache cannot
answer. Checks run in a fixed order and the first one that applies ends the
cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Protocol, Set

from .schedule import ExpandedWindow, ResolvedStatus, Schedule, ScheduleSettings, describe, find_next

logger = logging.getLogger(__name__)


@dataclass
class RuntimeState:
    """Process-lifetime state owned by one evaluation loop.

    `last_set_status_id` is None when the remote state is unknown and must be
    checked, "" when it is known to be empty, otherwise the id of the last
    status this process published (or adopted).
    """

    last_set_status_id: Optional[str] = None
    assertive_counter: int = 0
    last_raw_config: Optional[str] = None
    schedule: Optional[Schedule] = None


@dataclass(frozen=True)
class RemoteStatus:
    """Status currently shown by the remote service."""

    message: str = ""
    icon: str = ""
    do_not_disturb: bool = False


class StatusRemote(Protocol):
    """Operations the reconciler needs from the remote status service."""

    def fetch_current(self) -> RemoteStatus: ...

    def publish(self, icon: str, message: str, expiration: int) -> None: ...

    def set_do_not_disturb(self, minutes: int) -> None: ...

    def clear_do_not_disturb(self) -> None: ...


class Outcome(str, Enum):
    """How a cycle ended."""

    ALREADY_SYNCHRONIZED = "already_synchronized"
    KNOWN_EMPTY = "known_empty"
    MANUAL_OVERRIDE = "manual_override"
    ALREADY_EMPTY = "already_empty"
    PUBLISHED = "published"


def _expiration(status: ResolvedStatus) -> int:
    """Unix timestamp of the status end, 0 for no expiry."""
    return int(round(status.end.timestamp())) if status.end else 0


def _log_next(windows: Iterable[ExpandedWindow], now: datetime, weekday: str) -> None:
    nxt, ms_until = find_next(windows, now, weekday)
    if nxt is None:
        return
    total_minutes = ms_until // 60000
    logger.info("next expected status [%s] expected in approximately %dh %dmin",
                nxt.id, total_minutes // 60, total_minutes % 60)


def apply_status(remote: StatusRemote, status: ResolvedStatus, current: RemoteStatus, now: datetime) -> None:
    """Publish `status` and bring do-not-disturb in line with it."""
    remote.publish(status.icon, status.message, _expiration(status))
    if status.do_not_disturb and not current.do_not_disturb:
        # Bounded snooze so DnD cannot outlive the status if the process dies
        minutes = max(1, (status.end - now) // timedelta(minutes=1))
        logger.info("enabling DnD for [%s] = %d minutes", status.id, minutes)
        remote.set_do_not_disturb(minutes)
    elif not status.do_not_disturb and current.do_not_disturb:
        logger.info("disabling DnD")
        remote.clear_do_not_disturb()


def reconcile(
    resolved: ResolvedStatus,
    settings: ScheduleSettings,
    state: RuntimeState,
    recognized_icons: Set[str],
    remote: StatusRemote,
    now: datetime,
    windows: Iterable[ExpandedWindow] = (),
    weekday: str = "",
) -> Outcome:
    """Run one reconciliation step and return how it ended.

    `state.last_set_status_id` is only updated after the remote calls of the
    branch taken have succeeded; a `RemoteError` leaves it untouched so the
    next cycle retries.
    """
    force = False
    if settings.assertive_interval and resolved.assertive:
        state.assertive_counter += 1
        if state.assertive_counter >= settings.assertive_interval:
            state.assertive_counter = 0
            force = True
            logger.info("assertive status [%s] due for re-assertion", resolved.id)

    if not force and state.last_set_status_id and resolved.id == state.last_set_status_id:
        logger.info("expected status already synchronised locally - skipping load/apply")
        return Outcome.ALREADY_SYNCHRONIZED

    if state.last_set_status_id == "" and resolved.is_empty:
        logger.info("no scheduled status applies and we are locally synchronised - skipping load/apply")
        _log_next(windows, now, weekday)
        return Outcome.KNOWN_EMPTY

    current = remote.fetch_current()

    # An icon we never schedule means someone set a status by hand
    if current.icon and current.icon not in recognized_icons and not force:
        logger.info("unrecognized icon %s was set - skipping [%s] until the next scheduled status",
                    current.icon, describe(resolved))
        state.last_set_status_id = resolved.id
        return Outcome.MANUAL_OVERRIDE

    if resolved.is_empty and current.message == "":
        logger.info("remote status and local status are already empty - avoiding redundant request")
        state.last_set_status_id = ""
        return Outcome.ALREADY_EMPTY

    apply_status(remote, resolved, current, now)
    state.last_set_status_id = resolved.id
    logger.info("new status was applied %s", describe(resolved))
    return Outcome.PUBLISHED
