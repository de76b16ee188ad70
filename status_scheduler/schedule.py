"""Recurring schedule entries and their concrete time windows.

Schedule entries declare a wall-clock start and either a same-day end or a
duration. Each evaluation expands them into `[start, end)` windows anchored on
today and the previous days, so an entry that runs past midnight is still seen
from yesterday's anchor. The resolver then picks the single window that
applies to a given instant.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .locales import resolve_weekdays

logger = logging.getLogger(__name__)


def _parse_clock(value) -> Tuple[int, int, int]:
    """Split a clock value into hours, minutes and seconds.

    Args:
      value: A `datetime.time` (TOML local time) or a string such as "16:00",
        "16:00:30" or "26:00:00" (durations may exceed 24 hours).

    Returns:
      An `(hours, minutes, seconds)` tuple of non-negative integers.

    Raises:
      ValueError: when the value cannot be read as a clock.
    """
    if isinstance(value, time):
        return value.hour, value.minute, value.second
    if not isinstance(value, str):
        raise ValueError(f"expected HH:MM[:SS], got {value!r}")
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"expected HH:MM[:SS], got {value!r}")
    h, m, s = (int(p) for p in parts + ["0"] * (3 - len(parts)))
    if h < 0 or not 0 <= m < 60 or not 0 <= s < 60:
        raise ValueError(f"clock value out of range: {value!r}")
    return h, m, s


def _parse_time_of_day(value) -> time:
    h, m, s = _parse_clock(value)
    return time(h, m, s)  # ValueError past 23:59:59


def _parse_duration(value) -> timedelta:
    h, m, s = _parse_clock(value)
    return timedelta(hours=h, minutes=m, seconds=s)


@dataclass(frozen=True)
class ScheduleSettings:
    """Schedule-wide settings from the `[settings]` table."""

    ignored_icons: FrozenSet[str] = frozenset()
    # Cycles between forced re-assertions; 0 disables assertive mode
    assertive_interval: int = 0


@dataclass(frozen=True)
class ScheduleEntry:
    """One declared recurring status.

    Exactly one of `end` (same-day clock) and `duration` is set.
    """

    id: str
    start: time
    icon: str
    messages: Tuple[str, ...]
    valid_weekdays: FrozenSet[str]
    end: Optional[time] = None
    duration: Optional[timedelta] = None
    do_not_disturb: bool = False
    assertive: bool = False


@dataclass(frozen=True)
class ExpandedWindow:
    """One occurrence of an entry anchored to a calendar day."""

    id: str
    start: datetime  # Inclusive
    end: datetime  # Exclusive
    icon: str
    messages: Tuple[str, ...]
    valid_weekdays: FrozenSet[str]
    do_not_disturb: bool = False
    assertive: bool = False

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    def contains(self, t: datetime) -> bool:
        return self.start <= t < self.end


@dataclass(frozen=True)
class ResolvedStatus:
    """The status expected right now; an empty `id` means nothing applies."""

    id: str = ""
    icon: str = ""
    message: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    valid_weekdays: FrozenSet[str] = field(default_factory=frozenset)
    do_not_disturb: bool = False
    assertive: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.id


NO_MATCH = ResolvedStatus()


@dataclass(frozen=True)
class Schedule:
    """A validated schedule: accepted entries in file order plus settings."""

    entries: Tuple[ScheduleEntry, ...] = ()
    settings: ScheduleSettings = field(default_factory=ScheduleSettings)


def build_settings(raw: Optional[Mapping]) -> ScheduleSettings:
    """Build `ScheduleSettings` from the raw `[settings]` table (may be None).

    Malformed values are reported as warnings and fall back to defaults, so a
    typo in settings never fails the whole schedule.
    """
    if raw is None:
        return ScheduleSettings()
    if not isinstance(raw, Mapping):
        logger.warning("EntryValidationWarning: [settings] must be a table; using defaults")
        return ScheduleSettings()
    ignored = raw.get("ignoredIcons", [])
    if isinstance(ignored, str):
        ignored = [ignored]
    elif not isinstance(ignored, list):
        logger.warning("EntryValidationWarning: settings.ignoredIcons must be a string or list; ignored")
        ignored = []
    interval = raw.get("assertiveInterval", 0)
    if isinstance(interval, bool) or not isinstance(interval, int):
        logger.warning("EntryValidationWarning: settings.assertiveInterval must be an integer; "
                       "assertive mode disabled")
        interval = 0
    return ScheduleSettings(
        ignored_icons=frozenset(str(i) for i in ignored if i),
        assertive_interval=max(0, interval),
    )


def build_entry(
    entry_id: str,
    raw: Mapping,
    weekdays: Tuple[str, ...],
    lookback_days: int,
) -> Optional[ScheduleEntry]:
    """Validate one raw schedule table and build its entry.

    Problems are reported as `EntryValidationWarning` log records and the
    entry is dropped (None is returned); they never fail the whole schedule.
    """
    def reject(reason: str) -> None:
        logger.warning("EntryValidationWarning: %s (check the status [%s] for issues)", reason, entry_id)

    if not isinstance(raw, Mapping):
        reject("schedule items must be tables")
        return None
    icon = raw.get("icon")
    if not icon:
        reject("scheduled statuses without icons are not supported")
        return None

    valid_weekdays = resolve_weekdays(weekdays, raw.get("days"))
    if not valid_weekdays:
        reject("no valid weekdays or alias could be determined from this item")
        logger.warning("(hint): supported values are %s, everyday, weekdays or 4D", ", ".join(weekdays))
        return None

    raw_messages = raw.get("message", [])
    if isinstance(raw_messages, str):
        raw_messages = [raw_messages]
    messages = tuple(str(m) for m in raw_messages) if isinstance(raw_messages, list) else ()
    if not messages:
        reject("at least one message is required")
        return None

    try:
        start = _parse_time_of_day(raw.get("start"))
        end = duration = None
        if raw.get("duration") is not None:
            duration = _parse_duration(raw["duration"])
        elif raw.get("end") is not None:
            end = _parse_time_of_day(raw["end"])
        else:
            reject("either end or duration is required")
            return None
    except ValueError as exc:
        reject(f"invalid clock value: {exc}")
        return None

    if duration is not None:
        if duration <= timedelta(0):
            reject("duration must be longer than zero")
            return None
        if duration > _max_duration(lookback_days):
            reject(
                f"items spanning more than {max(lookback_days - 1, 0)} day(s) cannot be "
                "fully seen; raise SS_MAX_DAYSPAN or shorten the duration"
            )
            return None
    elif end <= start:
        reject("end must be after start on the same day; use duration to span midnight")
        return None

    # TOML booleans only; the string "false" must not read as true
    for flag in ("doNotDisturb", "assertive"):
        if not isinstance(raw.get(flag, False), bool):
            reject(f"{flag} must be true or false")
            return None

    return ScheduleEntry(
        id=entry_id,
        start=start,
        end=end,
        duration=duration,
        icon=str(icon),
        messages=messages,
        valid_weekdays=frozenset(valid_weekdays),
        do_not_disturb=raw.get("doNotDisturb", False),
        assertive=raw.get("assertive", False),
    )


def _max_duration(lookback_days: int) -> timedelta:
    return timedelta(hours=(lookback_days - 1) * 24)


def _occurrence(entry: ScheduleEntry, anchor: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(anchor, entry.start)
    if entry.duration is not None:
        # May roll into the following days
        return start, start + entry.duration
    return start, datetime.combine(anchor, entry.end)


def expand(
    entries: Iterable[ScheduleEntry],
    settings: ScheduleSettings,
    lookback_days: int,
    now: datetime,
) -> Tuple[List[ExpandedWindow], Set[str]]:
    """Expand entries into concrete windows for `now` and the days before it.

    Every entry yields one window per anchor day, from `lookback_days - 1`
    days ago up to today. Weekday filtering is left to the resolver.

    Returns:
      The windows and the set of recognized icons (every expanded entry's
      icon plus the icons ignored in settings).
    """
    windows: List[ExpandedWindow] = []
    recognized: Set[str] = set(settings.ignored_icons)
    today = now.date()
    for entry in entries:
        if entry.duration is not None and entry.duration > _max_duration(lookback_days):
            logger.warning(
                "EntryValidationWarning: duration of [%s] exceeds %d day(s) of look-back; skipped",
                entry.id, lookback_days - 1,
            )
            continue
        produced = False
        for day_offset in range(lookback_days - 1, -1, -1):
            start, end = _occurrence(entry, today - timedelta(days=day_offset))
            if end <= start:
                logger.debug("skipping empty window for [%s] on %s", entry.id, start.date())
                continue
            windows.append(ExpandedWindow(
                id=entry.id,
                start=start,
                end=end,
                icon=entry.icon,
                messages=entry.messages,
                valid_weekdays=entry.valid_weekdays,
                do_not_disturb=entry.do_not_disturb,
                assertive=entry.assertive,
            ))
            produced = True
        if produced:
            recognized.add(entry.icon)
    return windows, recognized


def pick_message(messages: Tuple[str, ...], rng=random) -> str:
    """Pick a message by rounding a uniform draw over the index range.

    The first and last messages are half as likely as the ones in between;
    this matches the long-standing selection and is kept as is.
    """
    # Round half up, not Python's round-half-even
    index = int(math.floor(rng.random() * (len(messages) - 1) + 0.5))
    return messages[index]


def resolve_active(
    windows: Iterable[ExpandedWindow],
    now: datetime,
    weekday: str,
    rng=random,
) -> ResolvedStatus:
    """Return the status that applies at `now` on `weekday`.

    When windows overlap the shortest one wins; equal spans keep input order.
    """
    matching = [w for w in windows if w.contains(now) and weekday in w.valid_weekdays]
    if not matching:
        return NO_MATCH
    # list.sort is stable, so ties resolve to the earlier window
    matching.sort(key=lambda w: w.span)
    winner = matching[0]
    return with_message(winner, pick_message(winner.messages, rng))


def find_next(
    windows: Iterable[ExpandedWindow],
    now: datetime,
    weekday: str,
) -> Tuple[Optional[ExpandedWindow], Optional[int]]:
    """Find the closest window starting after `now`.

    Returns:
      `(window, milliseconds_until_start)`, or `(None, None)` when nothing
      upcoming is visible.
    """
    upcoming = [w for w in windows if w.start > now and weekday in w.valid_weekdays]
    if not upcoming:
        return None, None
    nxt = min(upcoming, key=lambda w: w.start - now)
    return nxt, int((nxt.start - now) / timedelta(milliseconds=1))


def describe(status: ResolvedStatus) -> str:
    """Short label for logs."""
    return status.id or "[[empty]]"


def with_message(window: ExpandedWindow, message: str) -> ResolvedStatus:
    """Collapse a window into a resolved status carrying one message."""
    return ResolvedStatus(
        id=window.id,
        icon=window.icon,
        message=message,
        start=window.start,
        end=window.end,
        valid_weekdays=window.valid_weekdays,
        do_not_disturb=window.do_not_disturb,
        assertive=window.assertive,
    )
