"""Tests for the Flask state API."""

import os
import shutil
import tempfile
import unittest
from datetime import datetime

from status_scheduler.service import StatusSchedulerService
from status_scheduler.web import create_app
from tests.fakes import FakeSlack, MutableClock

SCHEDULE = """
[focus]
start = 09:00:00
end = 11:00:00
icon = ":focus:"
message = "Heads down"
days = "weekdays"
doNotDisturb = true
"""


class TestWebApp(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        path = os.path.join(self.tmpdir, "schedule.toml")
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(SCHEDULE)
        self.slack = FakeSlack()
        self.clock = MutableClock(datetime(1996, 1, 1, 10, 0))
        self.service = StatusSchedulerService(self.slack, schedule_path=path, locale="en-US",
                                              lookback_days=2, interval_seconds=20, clock=self.clock)
        self.client = create_app(self.service).test_client()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_state_before_any_cycle(self):
        data = self.client.get("/api/state").get_json()
        self.assertEqual(data["cycles"], 0)
        self.assertFalse(data["running"])
        self.assertEqual(data["interval_seconds"], 20)
        self.assertIsNone(data["next_tick_at"])

    def test_state_after_cycle(self):
        self.service.run_cycle()
        data = self.client.get("/api/state").get_json()
        self.assertEqual(data["cycles"], 1)
        self.assertEqual(data["last_outcome"], "published")
        self.assertEqual(data["last_set_status_id"], "focus")

    def test_schedule_endpoint_is_read_only(self):
        self.service.run_cycle()
        self.slack.calls.clear()
        data = self.client.get("/api/schedule").get_json()
        self.assertEqual(data["active"]["id"], "focus")
        self.assertTrue(data["active"]["do_not_disturb"])
        self.assertEqual(self.slack.calls, [])

    def test_dashboard_renders(self):
        self.service.run_cycle()
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"focus", resp.data)


if __name__ == "__main__":
    unittest.main()
