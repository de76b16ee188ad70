"""Tests for schedule expansion and window resolution."""

import random
import unittest
from datetime import datetime, time, timedelta

from status_scheduler.locales import WEEKDAY_NAMES
from status_scheduler.schedule import (
    NO_MATCH,
    ScheduleSettings,
    _parse_clock,
    build_entry,
    build_settings,
    expand,
    find_next,
    pick_message,
    resolve_active,
)
from tests.fakes import FixedRandom

EN = WEEKDAY_NAMES["en"]
EVERYDAY = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
# 1996-01-01 was a Monday
MONDAY = datetime(1996, 1, 1)


def _entry(entry_id="item", lookback=2, **raw):
    base = {"start": "16:00:00", "end": "17:00:00", "icon": ":test:", "message": "hi", "days": EVERYDAY}
    base.update(raw)
    for key in [k for k, v in base.items() if v is None]:
        del base[key]
    return build_entry(entry_id, base, EN, lookback)


class TestParseClock(unittest.TestCase):

    def test_accepts_toml_time(self):
        self.assertEqual(_parse_clock(time(16, 5, 7)), (16, 5, 7))

    def test_accepts_string_without_seconds(self):
        self.assertEqual(_parse_clock("08:30"), (8, 30, 0))

    def test_allows_hours_past_a_day(self):
        self.assertEqual(_parse_clock("26:00:00"), (26, 0, 0))

    def test_rejects_garbage(self):
        for bad in ("soon", "1:2:3:4", "10:75", None, 5):
            with self.assertRaises(ValueError):
                _parse_clock(bad)


class TestBuildEntry(unittest.TestCase):

    def test_builds_valid_entry(self):
        entry = _entry(message=["a", "b"], doNotDisturb=True)
        self.assertEqual(entry.start, time(16))
        self.assertEqual(entry.end, time(17))
        self.assertIsNone(entry.duration)
        self.assertEqual(entry.messages, ("a", "b"))
        self.assertTrue(entry.do_not_disturb)
        self.assertFalse(entry.assertive)

    def test_missing_icon_is_dropped_with_warning(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING") as cm:
            self.assertIsNone(_entry(icon=""))
        self.assertIn("EntryValidationWarning", cm.output[0])
        self.assertIn("[item]", cm.output[0])

    def test_unknown_weekdays_are_dropped(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertIsNone(_entry(days=["Montag", "someday"]))

    def test_partially_known_weekdays_are_kept(self):
        entry = _entry(days=["MON", "Funday"])
        self.assertEqual(entry.valid_weekdays, frozenset({"mon"}))

    def test_duration_longer_than_lookback_is_dropped(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertIsNone(_entry(end=None, duration="25:00:00"))
        self.assertIsNotNone(_entry(end=None, duration="25:00:00", lookback=3))

    def test_same_day_end_before_start_is_dropped(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertIsNone(_entry(start="22:00", end="06:00"))

    def test_requires_end_or_duration(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertIsNone(_entry(end=None))

    def test_requires_messages(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertIsNone(_entry(message=[]))

    def test_flags_must_be_booleans(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING") as cm:
            self.assertIsNone(_entry(doNotDisturb="false"))
        self.assertIn("doNotDisturb must be true or false", cm.output[0])
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertIsNone(_entry(assertive=1))
        self.assertFalse(_entry(doNotDisturb=False).do_not_disturb)


class TestBuildSettings(unittest.TestCase):

    def test_defaults(self):
        self.assertEqual(build_settings(None), ScheduleSettings())

    def test_reads_values(self):
        settings = build_settings({"ignoredIcons": [":coffee:"], "assertiveInterval": 3})
        self.assertEqual(settings.ignored_icons, frozenset({":coffee:"}))
        self.assertEqual(settings.assertive_interval, 3)

    def test_settings_that_are_not_a_table_fall_back_to_defaults(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING") as cm:
            self.assertEqual(build_settings("x"), ScheduleSettings())
        self.assertIn("[settings] must be a table", cm.output[0])

    def test_malformed_values_fall_back_to_defaults(self):
        with self.assertLogs("status_scheduler.schedule", level="WARNING") as cm:
            settings = build_settings({"ignoredIcons": 5, "assertiveInterval": "often"})
        self.assertEqual(settings, ScheduleSettings())
        self.assertEqual(len(cm.output), 2)
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            self.assertEqual(build_settings({"assertiveInterval": True}).assertive_interval, 0)
        self.assertEqual(build_settings({"ignoredIcons": ":lunch:"}).ignored_icons, frozenset({":lunch:"}))


class TestExpand(unittest.TestCase):

    def test_one_occurrence_per_lookback_day(self):
        entries = [_entry("a", lookback=3), _entry("b", lookback=3, end=None, duration="47:00:00")]
        now = MONDAY + timedelta(hours=12)
        windows, icons = expand(entries, ScheduleSettings(), 3, now)
        self.assertEqual(len(windows), 6)
        self.assertTrue(all(w.end > w.start for w in windows))
        starts = sorted({w.start for w in windows if w.id == "a"})
        self.assertEqual(starts, [MONDAY - timedelta(days=2, hours=-16),
                                  MONDAY - timedelta(days=1, hours=-16),
                                  MONDAY + timedelta(hours=16)])
        self.assertEqual(icons, {":test:"})

    def test_recognized_icons_include_ignored(self):
        settings = ScheduleSettings(ignored_icons=frozenset({":lunch:"}))
        _, icons = expand([_entry()], settings, 2, MONDAY)
        self.assertEqual(icons, {":test:", ":lunch:"})

    def test_duration_rolls_past_midnight(self):
        entry = _entry(start="22:00", end=None, duration="10:00")
        windows, _ = expand([entry], ScheduleSettings(), 2, MONDAY + timedelta(hours=3))
        yesterday = [w for w in windows if w.start.date() == datetime(1995, 12, 31).date()][0]
        self.assertEqual(yesterday.end, MONDAY + timedelta(hours=8))

    def test_overlong_duration_is_skipped_during_expand(self):
        entry = _entry(end=None, duration="30:00", lookback=3)
        with self.assertLogs("status_scheduler.schedule", level="WARNING"):
            windows, icons = expand([entry], ScheduleSettings(), 2, MONDAY)
        self.assertEqual(windows, [])
        self.assertEqual(icons, set())


class TestResolveActive(unittest.TestCase):

    def setUp(self):
        self.umbrella = _entry("umbrella", start="09:00", end="11:00", message="busy")
        self.nested = _entry("nested", start="09:30", end="10:00", message=["m1", "m2"])

    def _windows(self, *entries, now=MONDAY):
        windows, _ = expand(entries, ScheduleSettings(), 2, now)
        return windows

    def test_no_match_returns_sentinel(self):
        windows = self._windows(self.umbrella)
        status = resolve_active(windows, MONDAY + timedelta(hours=12), "mon")
        self.assertIs(status, NO_MATCH)
        self.assertEqual((status.id, status.message, status.icon), ("", "", ""))
        self.assertIsNone(status.end)

    def test_shortest_window_wins(self):
        windows = self._windows(self.umbrella, self.nested)
        status = resolve_active(windows, MONDAY + timedelta(hours=9, minutes=45), "mon")
        self.assertEqual(status.id, "nested")
        self.assertEqual(status.end, MONDAY + timedelta(hours=10))
        status = resolve_active(windows, MONDAY + timedelta(hours=10, minutes=15), "mon")
        self.assertEqual(status.id, "umbrella")

    def test_equal_spans_keep_input_order(self):
        first = _entry("first", start="09:00", end="10:00")
        second = _entry("second", start="09:00", end="10:00")
        at = MONDAY + timedelta(hours=9, minutes=30)
        self.assertEqual(resolve_active(self._windows(first, second), at, "mon").id, "first")
        self.assertEqual(resolve_active(self._windows(second, first), at, "mon").id, "second")

    def test_end_is_exclusive_and_start_inclusive(self):
        windows = self._windows(self.umbrella)
        self.assertEqual(resolve_active(windows, MONDAY + timedelta(hours=9), "mon").id, "umbrella")
        self.assertIs(resolve_active(windows, MONDAY + timedelta(hours=11), "mon"), NO_MATCH)

    def test_weekday_must_match(self):
        weekend = _entry("weekend", start="09:00", end="11:00", days=["Sat", "Sun"])
        windows = self._windows(weekend)
        self.assertIs(resolve_active(windows, MONDAY + timedelta(hours=10), "mon"), NO_MATCH)

    def test_repeated_resolution_is_stable(self):
        windows = self._windows(self.umbrella, self.nested)
        at = MONDAY + timedelta(hours=9, minutes=40)
        rng = random.Random(7)
        for _ in range(20):
            status = resolve_active(windows, at, "mon", rng)
            self.assertEqual((status.id, status.icon), ("nested", ":test:"))
            self.assertIn(status.message, ("m1", "m2"))

    def test_window_from_yesterday_anchor_is_active_after_midnight(self):
        overnight = _entry("overnight", start="22:00", end=None, duration="10:00")
        now = MONDAY + timedelta(days=1, hours=2)
        windows = self._windows(overnight, now=now)
        status = resolve_active(windows, now, "tue")
        self.assertEqual(status.id, "overnight")
        self.assertEqual(status.end, now + timedelta(hours=6))


class TestPickMessage(unittest.TestCase):

    def test_rounds_half_up_over_index_range(self):
        messages = ("a", "b", "c")
        self.assertEqual(pick_message(messages, FixedRandom(0.0)), "a")
        self.assertEqual(pick_message(messages, FixedRandom(0.24)), "a")
        self.assertEqual(pick_message(messages, FixedRandom(0.25)), "b")
        self.assertEqual(pick_message(messages, FixedRandom(0.75)), "c")
        self.assertEqual(pick_message(messages, FixedRandom(0.999)), "c")

    def test_single_message(self):
        self.assertEqual(pick_message(("only",), FixedRandom(0.9)), "only")

    def test_seeded_source_is_reproducible(self):
        messages = tuple("abcdef")
        first = [pick_message(messages, random.Random(3)) for _ in range(5)]
        second = [pick_message(messages, random.Random(3)) for _ in range(5)]
        self.assertEqual(first, second)


class TestFindNext(unittest.TestCase):

    def test_returns_closest_upcoming(self):
        entries = [_entry("late", start="18:00", end="20:00"), _entry("soon", start="13:00", end="14:00")]
        now = MONDAY + timedelta(hours=12)
        windows, _ = expand(entries, ScheduleSettings(), 2, now)
        nxt, ms = find_next(windows, now, "mon")
        self.assertEqual(nxt.id, "soon")
        self.assertEqual(ms, 60 * 60 * 1000)

    def test_none_when_nothing_upcoming(self):
        windows, _ = expand([_entry()], ScheduleSettings(), 2, MONDAY + timedelta(hours=18))
        self.assertEqual(find_next(windows, MONDAY + timedelta(hours=18), "mon"), (None, None))


if __name__ == "__main__":
    unittest.main()
