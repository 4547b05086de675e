"""Tests for the FastAPI routes, driven through TestClient."""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import yaml
from fastapi.testclient import TestClient

from prayer_sync.api import create_app
from prayer_sync.core import db
from prayer_sync.core.app import PrayerSyncApp
from prayer_sync.core.config import Config
from prayer_sync.core.task import TaskType, upsert_task_schedule
from prayer_sync.notifications.scheduler import InMemoryAlarmBackend
from prayer_sync.prayer.errors import ParseFailure
from prayer_sync.prayer.resolver import PrayerSource, ResolvedPrayerTimes

TIMES = {
    "fajr": "04:30",
    "sunrise": "06:05",
    "dhuhr": "13:30",
    "asr": "17:10",
    "maghrib": "20:45",
    "isha": "22:10",
}


class TestPrayerApi(unittest.TestCase):
    def setUp(self):
        db.reset_db()
        self._tmp = tempfile.TemporaryDirectory()
        config_path = Path(self._tmp.name) / "config.yaml"
        config_path.write_text(yaml.safe_dump({
            "cache": {"directory": str(Path(self._tmp.name) / "cache")},
            "widget": {"poll_interval": 0.01, "max_attempts": 2, "timeout": 0.1},
        }))
        self.app = PrayerSyncApp(
            config=Config(str(config_path), watch=False),
            db_url="sqlite://",
            alarm_backend=InMemoryAlarmBackend(),
        )
        self.resolver = MagicMock()
        self.resolver.resolve.return_value = ResolvedPrayerTimes(
            source_used=PrayerSource.SCRAPED_REMOTE,
            times=dict(TIMES),
            date="2025-06-01",
            input_settings={"cityId": "58"},
            city_name="Casablanca",
        )
        patcher = patch.object(self.app, "build_resolver", return_value=self.resolver)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(create_app(self.app))

    def tearDown(self):
        self.app.stop()
        db.reset_db()
        self._tmp.cleanup()

    def test_times_is_404_before_any_refresh(self):
        response = self.client.get("/api/prayer/times")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "No prayer times data available")

    def test_refresh_then_read_widget_record(self):
        response = self.client.post("/api/prayer/refresh")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "scraped_remote")
        self.assertEqual(body["times"], TIMES)
        self.assertEqual(body["city_name"], "Casablanca")
        self.assertEqual(body["scheduled"], self.app.last_scheduled_count)

        response = self.client.get("/api/prayer/times")
        self.assertEqual(response.status_code, 200)
        record = response.json()
        self.assertEqual(record["fajr"], "04:30")
        self.assertEqual(record["source"], "ministry")
        self.assertEqual(record["location"], "Casablanca")
        self.assertFalse(record["is_dark_mode"])

    def test_failed_refresh_reports_none_and_schedules_nothing(self):
        self.resolver.resolve.return_value = ResolvedPrayerTimes(
            source_used=PrayerSource.NONE,
            times={},
            date="2025-06-01",
            input_settings={"lastError": "all sources failed"},
        )

        body = self.client.post("/api/prayer/refresh").json()

        self.assertEqual(body["source"], "none")
        self.assertEqual(body["scheduled"], 0)
        self.assertEqual(self.client.get("/api/prayer/times").status_code, 404)

    def test_notifications_mirror_last_scheduling_cycle(self):
        self.client.post("/api/prayer/refresh")

        response = self.client.get("/api/prayer/notifications")

        self.assertEqual(response.status_code, 200)
        entries = response.json()
        self.assertEqual(len(entries), len(self.app.scheduler.last_entries))
        for entry in entries:
            self.assertIn(entry["kind"], ("athan", "reminder", "reminder_dismiss"))

    def test_calendar_source_failure_is_502(self):
        with patch.object(self.app, "get_calendar", side_effect=ParseFailure("no calendar table")):
            response = self.client.get("/api/prayer/calendar")
        self.assertEqual(response.status_code, 502)
        self.assertIn("no calendar table", response.json()["detail"])

    def test_tasks_lists_db_schedules_and_timers(self):
        upsert_task_schedule("prayer_refresh", TaskType.DAILY, {"time": "00:05"})
        self.app.task_manager.schedule_task("nightly_check", lambda: None, 3600)

        response = self.client.get("/api/tasks")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertIn("prayer_refresh", [row["component_name"] for row in body["db_schedules"]])
        self.assertIn("nightly_check", [timer["name"] for timer in body["active_timers"]])


if __name__ == "__main__":
    unittest.main()
