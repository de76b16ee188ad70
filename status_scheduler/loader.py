"""Schedule file loading with a raw-text cache.

The file is read every cycle; it is only parsed again when its text differs
from what was parsed last, so an unchanged schedule costs one file read.
"""

from __future__ import annotations

import logging
import tomllib
from typing import Mapping, Tuple

from .errors import ConfigParseError, ConfigReadError
from .reconcile import RuntimeState
from .schedule import Schedule, build_entry, build_settings

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "settings"


def read_schedule_text(path: str) -> str:
    """Return the schedule file's text.

    Raises:
      ConfigReadError: when the file is missing or unreadable.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigReadError(f"cannot read schedule {path}: {exc}") from exc


def parse_schedule_text(text: str) -> dict:
    """Parse schedule TOML.

    Raises:
      ConfigParseError: on malformed TOML.
    """
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigParseError(f"schedule is not valid TOML: {exc}") from exc


def build_schedule(parsed: Mapping, weekdays: Tuple[str, ...], lookback_days: int) -> Schedule:
    """Validate parsed TOML into a `Schedule`, dropping invalid entries."""
    entries = []
    for entry_id, raw in parsed.items():
        if entry_id == SETTINGS_TABLE:
            continue
        entry = build_entry(entry_id, raw, weekdays, lookback_days)
        if entry is not None:
            entries.append(entry)
    settings = build_settings(parsed.get(SETTINGS_TABLE))
    logger.info("schedule loaded: %d of %d item(s) accepted",
                len(entries), len([k for k in parsed if k != SETTINGS_TABLE]))
    return Schedule(entries=tuple(entries), settings=settings)


def reload_schedule(
    path: str,
    state: RuntimeState,
    weekdays: Tuple[str, ...],
    lookback_days: int,
) -> Tuple[Schedule, bool]:
    """Read the schedule and re-parse it when its text changed.

    The cache in `state` is only replaced after a successful parse, so a
    broken edit leaves the previous schedule in place.

    Returns:
      `(schedule, changed)` where `changed` is True when new text was parsed.

    Raises:
      ConfigReadError, ConfigParseError: the reload failed; `state` is untouched.
    """
    text = read_schedule_text(path)
    if state.schedule is not None and text == state.last_raw_config:
        return state.schedule, False
    schedule = build_schedule(parse_schedule_text(text), weekdays, lookback_days)
    state.last_raw_config = text
    state.schedule = schedule
    return schedule, True
