"""Tests for notification scheduling."""

import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from dateutil import tz

from prayer_sync.core.task_manager import TaskManager
from prayer_sync.notifications.config import (
    ATHAN_CHANNEL_NORMAL,
    PRAYER_CHANNEL_FULL,
    PRAYER_CHANNEL_SILENT,
    PRAYER_CHANNEL_VIBRATE,
    REMINDER_CHANNEL_FULL,
    AlertSoundStyle,
    NotificationSettings,
    NotificationState,
    prayer_channel,
    reminder_channel,
)
from prayer_sync.notifications.scheduler import (
    ATHAN,
    REMINDER,
    REMINDER_DISMISS,
    InMemoryAlarmBackend,
    NotificationScheduler,
    TimerAlarmBackend,
    notification_id,
)

ZONE = tz.gettz("Africa/Casablanca")

TIMES = {
    "fajr": "04:30",
    "sunrise": "06:00",
    "dhuhr": "13:30",
    "asr": "17:00",
    "maghrib": "N/A",
    "isha": "22:00",
}


def _now(hour, minute, second=0, microsecond=0):
    return datetime(2025, 6, 1, hour, minute, second, microsecond, tzinfo=ZONE)


class TestNotificationScheduler(unittest.TestCase):
    def setUp(self):
        self.backend = InMemoryAlarmBackend()
        self.scheduler = NotificationScheduler(self.backend)

    def _kinds(self, kind):
        return [e for e in self.backend.entries if e.kind == kind]

    def test_only_future_non_sentinel_prayers(self):
        count = self.scheduler.schedule_for_day(TIMES, NotificationSettings(), now=_now(12, 0))

        self.assertEqual(count, 3)
        self.assertEqual([e.prayer for e in self._kinds(ATHAN)], ["Dhuhr", "Asr", "Isha"])

    def test_prayer_at_exactly_now_is_skipped(self):
        count = self.scheduler.schedule_for_day(TIMES, NotificationSettings(), now=_now(13, 30))
        self.assertEqual(count, 2)
        self.assertNotIn("Dhuhr", [e.prayer for e in self.backend.entries])

    def test_reminder_at_exactly_now_is_skipped(self):
        settings = NotificationSettings(reminder_enabled=True, reminder_minutes=10)

        self.scheduler.schedule_for_day(TIMES, settings, now=_now(13, 20))

        reminders = [e.prayer for e in self._kinds(REMINDER)]
        self.assertEqual(reminders, ["Asr", "Isha"])

    def test_reminder_just_before_is_scheduled(self):
        settings = NotificationSettings(reminder_enabled=True, reminder_minutes=10)
        now = _now(13, 20) - timedelta(microseconds=1)

        count = self.scheduler.schedule_for_day(TIMES, settings, now=now)

        reminders = [e.prayer for e in self._kinds(REMINDER)]
        self.assertEqual(reminders, ["Dhuhr", "Asr", "Isha"])
        # reminder and its dismiss count once
        self.assertEqual(count, 6)
        self.assertEqual(len(self._kinds(REMINDER_DISMISS)), 3)

    def test_reminder_precedes_its_prayer(self):
        settings = NotificationSettings(reminder_enabled=True, reminder_minutes=15)
        self.scheduler.schedule_for_day(TIMES, settings, now=_now(12, 0))

        athans = {e.prayer: e for e in self._kinds(ATHAN)}
        for reminder in self._kinds(REMINDER):
            self.assertLess(reminder.fire_at, athans[reminder.prayer].fire_at)
            self.assertEqual(athans[reminder.prayer].fire_at - reminder.fire_at, timedelta(minutes=15))

    def test_dismiss_fires_at_prayer_time_with_reminder_id(self):
        settings = NotificationSettings(reminder_enabled=True, reminder_minutes=10)
        self.scheduler.schedule_for_day(TIMES, settings, now=_now(12, 0))

        reminder = self._kinds(REMINDER)[0]
        dismiss = self._kinds(REMINDER_DISMISS)[0]
        self.assertEqual(dismiss.notification_id, reminder.notification_id)
        self.assertEqual(dismiss.fire_at, _now(13, 30))
        self.assertTrue(reminder.payload["hasCountdown"])

    def test_reminders_off_when_minutes_zero(self):
        settings = NotificationSettings(reminder_enabled=True, reminder_minutes=0)
        count = self.scheduler.schedule_for_day(TIMES, settings, now=_now(12, 0))
        self.assertEqual(count, 3)
        self.assertEqual(self._kinds(REMINDER), [])

    def test_global_off_state(self):
        settings = NotificationSettings(state=NotificationState.OFF)
        self.assertEqual(self.scheduler.schedule_for_day(TIMES, settings, now=_now(0, 1)), 0)

    def test_advanced_control_per_prayer(self):
        settings = NotificationSettings(
            advanced_control=True,
            prayer_states={"Asr": NotificationState.OFF, "Isha": NotificationState.SILENT},
        )
        self.scheduler.schedule_for_day(TIMES, settings, now=_now(12, 0))

        athans = {e.prayer: e for e in self._kinds(ATHAN)}
        self.assertEqual(sorted(athans), ["Dhuhr", "Isha"])
        self.assertEqual(athans["Dhuhr"].channel_id, PRAYER_CHANNEL_FULL)
        self.assertEqual(athans["Isha"].channel_id, PRAYER_CHANNEL_SILENT)
        self.assertFalse(athans["Isha"].vibration)
        self.assertFalse(athans["Isha"].sound)

    def test_full_athan_is_insistent(self):
        settings = NotificationSettings(sound_style=AlertSoundStyle.FULL_ATHAN)
        self.scheduler.schedule_for_day(TIMES, settings, now=_now(12, 0))

        entry = self._kinds(ATHAN)[0]
        self.assertEqual(entry.channel_id, ATHAN_CHANNEL_NORMAL)
        self.assertTrue(entry.insistent)
        self.assertTrue(entry.sound)
        self.assertEqual(entry.payload["type"], "athan")
        self.assertEqual(entry.payload["scheduledTime"], int(_now(13, 30).timestamp() * 1000))

    def test_bad_time_is_skipped_not_fatal(self):
        times = dict(TIMES, dhuhr="1330")
        count = self.scheduler.schedule_for_day(times, NotificationSettings(), now=_now(12, 0))
        self.assertEqual(count, 2)

    def test_reschedule_supersedes_previous_set(self):
        self.scheduler.schedule_for_day(TIMES, NotificationSettings(), now=_now(12, 0))
        self.assertEqual(len(self.backend.entries), 3)

        later = dict(TIMES, isha="23:00")
        count = self.scheduler.reschedule(later, NotificationSettings(), now=_now(16, 0))

        self.assertEqual(count, 2)
        self.assertEqual([e.prayer for e in self.backend.entries], ["Asr", "Isha"])
        self.assertEqual(self.scheduler.last_entries, self.backend.entries)

    def test_naive_now_takes_settings_timezone(self):
        self.scheduler.schedule_for_day(TIMES, NotificationSettings(), now=datetime(2025, 6, 1, 12, 0))
        self.assertIsNotNone(self.backend.entries[0].fire_at.tzinfo)


class TestNotificationIds(unittest.TestCase):
    def test_stable(self):
        self.assertEqual(notification_id("Fajr", "04:30"), notification_id("Fajr", "04:30"))
        self.assertNotEqual(notification_id("Fajr", "04:30"), notification_id("Fajr", "04:31"))
        self.assertGreaterEqual(notification_id("Isha", "22:00"), 0)


class TestChannels(unittest.TestCase):
    def test_prayer_channel_table(self):
        self.assertEqual(prayer_channel(NotificationState.VIBRATE, AlertSoundStyle.FULL_ATHAN), PRAYER_CHANNEL_VIBRATE)
        self.assertEqual(prayer_channel(NotificationState.FULL), PRAYER_CHANNEL_FULL)

    def test_reminder_channel_table(self):
        self.assertEqual(reminder_channel(NotificationState.FULL), REMINDER_CHANNEL_FULL)

    def test_unknown_values_fall_back(self):
        self.assertEqual(NotificationState.from_value(7), NotificationState.FULL)
        self.assertEqual(NotificationState.from_value("x"), NotificationState.FULL)
        self.assertEqual(AlertSoundStyle.from_value(None), AlertSoundStyle.SYSTEM)

    def test_settings_from_config(self):
        settings = NotificationSettings.from_config(
            {"state": 1, "sound_style": 2, "advanced_control": True,
             "prayer_states": {"Fajr": -1}, "reminder_enabled": True, "reminder_minutes": 5},
            {"hue": 120},
            timezone="Europe/Paris",
        )
        self.assertEqual(settings.state, NotificationState.VIBRATE)
        self.assertEqual(settings.prayer_state("Fajr"), NotificationState.OFF)
        self.assertEqual(settings.prayer_state("Isha"), NotificationState.FULL)
        self.assertTrue(settings.reminders_active)
        self.assertEqual(settings.hue, 120.0)


class TestTimerAlarmBackend(unittest.TestCase):
    def setUp(self):
        self.task_manager = TaskManager()

    def tearDown(self):
        self.task_manager.stop()

    def test_arm_and_cancel_all(self):
        scheduler = NotificationScheduler(TimerAlarmBackend(self.task_manager))
        now = _now(12, 0)
        count = scheduler.schedule_for_day(TIMES, NotificationSettings(), now=now)

        names = [t["name"] for t in self.task_manager.get_active_timers()]
        self.assertEqual(count, 3)
        self.assertEqual(len([n for n in names if n.startswith(TimerAlarmBackend.GROUP)]), 3)

        self.task_manager.schedule_task("unrelated", lambda: None, 3600)
        self.assertEqual(scheduler.backend.cancel_all(), 3)
        self.assertEqual([t["name"] for t in self.task_manager.get_active_timers()], ["unrelated"])

    def test_fired_alarm_reaches_sink(self):
        sink = MagicMock()
        backend = TimerAlarmBackend(self.task_manager, sink=sink)
        scheduler = NotificationScheduler(backend)
        entry = scheduler.build_athan("Fajr", _now(4, 30), NotificationState.FULL, NotificationSettings())

        backend._fire(entry)

        sink.show.assert_called_once_with(entry)


if __name__ == "__main__":
    unittest.main()
