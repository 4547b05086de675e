"""Tests for the widget record and the sync bridge."""

import unittest
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

from prayer_sync.core import db
from prayer_sync.core.signals import REFRESH_WIDGET_CACHE, WIDGET_RERENDER, SignalBus
from prayer_sync.core.task import WorkResult
from prayer_sync.prayer.cities import CityRepository
from prayer_sync.prayer.resolver import PrayerSource, ResolvedPrayerTimes
from prayer_sync.widget.bridge import WidgetSyncBridge
from prayer_sync.widget.record import (
    WIDGET_CACHE_KEY,
    WIDGET_LAST_UPDATE_KEY,
    DisplaySettings,
    WidgetCacheRecord,
)
from prayer_sync.widget.store import KeyValueStore
from prayer_sync.widget.task import WidgetCacheUpdateTask

TIMES = {
    "fajr": "06:37", "sunrise": "08:03", "dhuhr": "13:25",
    "asr": "16:30", "maghrib": "18:45", "isha": "20:05",
}


def _resolved(source=PrayerSource.SCRAPED_REMOTE, city_name="الدار البيضاء"):
    return ResolvedPrayerTimes(source_used=source, times=dict(TIMES), date="2025-11-15", city_name=city_name)


class TestWidgetCacheRecord(unittest.TestCase):
    def test_json_round_trip(self):
        record = WidgetCacheRecord(
            fajr="06:37", sunrise="08:03", dhuhr="13:25", asr="16:30", maghrib="18:45", isha="20:05",
            source="adhan", location="33.57, -7.59", hue=120.5, is_dark_mode=True,
            bg_transparency=0.4, cache_date="15/11/2025", cache_timestamp_ms=1763200000000,
        )
        self.assertEqual(WidgetCacheRecord.from_json(record.to_json()), record)

    def test_json_keys(self):
        data = WidgetCacheRecord().to_dict()
        self.assertEqual(set(data), {
            "fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha", "source", "location",
            "hue", "isDarkMode", "bgTransparency", "cacheDateDdMmYyyy", "cacheTimestampMs",
        })

    def test_ministry_location_is_latin_city_name(self):
        display = DisplaySettings(theme_mode="dark", latitude="33.57", longitude="-7.59")
        now = datetime(2025, 11, 15, 9, 30)
        record = WidgetCacheRecord.from_resolved(_resolved(), display, cities=CityRepository.load(), now=now)

        self.assertEqual(record.source, "ministry")
        self.assertEqual(record.location, "Casablanca")
        self.assertTrue(record.is_dark_mode)
        self.assertEqual(record.cache_date, "15/11/2025")
        self.assertTrue(record.is_fresh(date(2025, 11, 15)))
        self.assertFalse(record.is_fresh(date(2025, 11, 16)))

    def test_coordinate_sources_use_coordinates(self):
        display = DisplaySettings(latitude="33.57", longitude="-7.59")
        for source, label in ((PrayerSource.API_REMOTE, "adhan"), (PrayerSource.OFFLINE_CALCULATED, "offline")):
            record = WidgetCacheRecord.from_resolved(_resolved(source), display)
            self.assertEqual(record.source, label)
            self.assertEqual(record.location, "33.57, -7.59")

    def test_display_settings_from_config(self):
        display = DisplaySettings.from_config(
            {"hue": 30, "theme_mode": "Dark", "bg_transparency": 0.5},
            {"city_name": "Rabat", "latitude": "34.02", "longitude": "-6.84"},
        )
        self.assertTrue(display.is_dark_mode)
        self.assertEqual(display.city_name, "Rabat")
        self.assertEqual(display.bg_transparency, 0.5)


class BridgeTestCase(unittest.TestCase):
    def setUp(self):
        db.reset_db()
        db.init_db(db_url="sqlite://")
        self.store = KeyValueStore()
        self.bus = SignalBus()
        self.bridge = WidgetSyncBridge(self.store, self.bus, poll_interval=0.01, max_attempts=3, timeout=0.1)

    def tearDown(self):
        db.reset_db()


class TestWidgetSyncBridge(BridgeTestCase):
    def test_write_verifies_and_broadcasts(self):
        rerender = MagicMock()
        self.bus.subscribe(WIDGET_RERENDER, rerender)

        self.assertTrue(self.bridge.write(_resolved(), DisplaySettings()))

        rerender.assert_called_once_with()
        record = self.bridge.read()
        self.assertEqual(record.isha, "20:05")
        self.assertEqual(self.store.get(WIDGET_LAST_UPDATE_KEY), str(record.cache_timestamp_ms))
        self.assertTrue(self.bridge.is_fresh())

    def test_read_missing_and_corrupt(self):
        self.assertIsNone(self.bridge.read())
        self.store.put(WIDGET_CACHE_KEY, "{not json")
        self.assertIsNone(self.bridge.read())

    def test_fresh_cache_needs_no_refresh(self):
        self.bridge.write(_resolved(), DisplaySettings())
        listener = MagicMock()
        self.bus.subscribe(REFRESH_WIDGET_CACHE, listener)

        self.assertEqual(self.bridge.request_refresh(), WorkResult.SUCCESS)
        listener.assert_not_called()

    def test_stale_cache_triggers_refresh(self):
        yesterday = datetime.now() - timedelta(days=1)
        self.bridge.write(_resolved(), DisplaySettings(), now=yesterday)
        self.bus.subscribe(REFRESH_WIDGET_CACHE, lambda: self.bridge.write(_resolved(), DisplaySettings()))

        self.assertEqual(self.bridge.request_refresh(), WorkResult.SUCCESS)
        self.assertTrue(self.bridge.is_fresh())

    def test_no_listener_means_retry(self):
        self.assertEqual(self.bridge.request_refresh(), WorkResult.RETRY)

    def test_listener_that_fails_means_retry(self):
        self.bus.subscribe(REFRESH_WIDGET_CACHE, MagicMock(side_effect=RuntimeError("offline")))
        self.assertEqual(self.bridge.request_refresh(), WorkResult.RETRY)

    def test_from_config(self):
        bridge = WidgetSyncBridge.from_config({"poll_interval": 2, "max_attempts": 4, "timeout": 9}, self.store, self.bus)
        self.assertEqual((bridge.poll_interval, bridge.max_attempts, bridge.timeout), (2.0, 4, 9.0))


class TestWidgetCacheUpdateTask(BridgeTestCase):
    def test_reports_retry_when_stale(self):
        task = WidgetCacheUpdateTask(self.bridge, check_interval=60)
        task.ensure_scheduled()
        queue = MagicMock()

        self.assertEqual(task.run({}, queue), WorkResult.RETRY)
        queue.put.assert_called_once_with(("widget_cache_update", "retry"))

    def test_success_when_fresh(self):
        self.bridge.write(_resolved(), DisplaySettings())
        task = WidgetCacheUpdateTask(self.bridge, check_interval=60)
        task.ensure_scheduled()

        self.assertEqual(task.run({}, None), WorkResult.SUCCESS)


if __name__ == "__main__":
    unittest.main()
