"""Short weekday names per locale.

Weekday names used in schedule files are matched against these tables rather
than the host's locale data. Every table is ordered Sunday first, so index 0
and 6 are the weekend for the `weekdays` alias.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Tuple

from .errors import ConfigError

WEEKDAY_NAMES: Dict[str, Tuple[str, ...]] = {
    "en": ("sun", "mon", "tue", "wed", "thu", "fri", "sat"),
    "de": ("so", "mo", "di", "mi", "do", "fr", "sa"),
    "fr": ("dim", "lun", "mar", "mer", "jeu", "ven", "sam"),
    "es": ("dom", "lun", "mar", "mié", "jue", "vie", "sáb"),
    "it": ("dom", "lun", "mar", "mer", "gio", "ven", "sab"),
    "nl": ("zo", "ma", "di", "wo", "do", "vr", "za"),
    "pt": ("dom", "seg", "ter", "qua", "qui", "sex", "sáb"),
    "sv": ("sön", "mån", "tis", "ons", "tors", "fre", "lör"),
    "da": ("søn", "man", "tir", "ons", "tor", "fre", "lør"),
    "nb": ("søn", "man", "tir", "ons", "tor", "fre", "lør"),
    "fi": ("su", "ma", "ti", "ke", "to", "pe", "la"),
    "pl": ("niedz", "pon", "wt", "śr", "czw", "pt", "sob"),
}

# Aliases resolved to table indices
ALIASES: Dict[str, Tuple[int, ...]] = {
    "everyday": (0, 1, 2, 3, 4, 5, 6),
    "weekdays": (1, 2, 3, 4, 5),
    "4d": (1, 2, 3, 4),  # four-day work week
}


def weekday_table(locale: str) -> Tuple[str, ...]:
    """Return the seven short names for `locale` ("en-US", "de-AT", "fr", ...).

    Raises:
      ConfigError: when neither the full tag nor its language is known.
    """
    tag = (locale or "").strip().lower().replace("_", "-")
    if tag in WEEKDAY_NAMES:
        return WEEKDAY_NAMES[tag]
    lang = tag.split("-", 1)[0]
    if lang in WEEKDAY_NAMES:
        return WEEKDAY_NAMES[lang]
    raise ConfigError(
        f'unsupported locale "{locale}" (known: {", ".join(sorted(WEEKDAY_NAMES))})'
    )


def weekday_name(table: Tuple[str, ...], instant: datetime) -> str:
    """Name the weekday of `instant` using a Sunday-first table."""
    # datetime.weekday() is Monday-first
    return table[(instant.weekday() + 1) % 7]


def resolve_weekdays(table: Tuple[str, ...], value) -> List[str]:
    """Turn a raw `days` value into the list of valid weekday names.

    Aliases expand to their table entries; a list is lower-cased and filtered
    to names the table knows. Anything else yields an empty list, which the
    caller treats as an invalid entry.
    """
    if isinstance(value, str):
        indices = ALIASES.get(value.strip().lower())
        return [table[i] for i in indices] if indices else []
    if not isinstance(value, (list, tuple)):
        return []
    names = [str(raw).strip().lower() for raw in value]
    return [n for n in names if n in table]
