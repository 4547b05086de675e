"""
Turns a day's resolved time map into armed alarms: one athan alert per prayer
and, optionally, a countdown reminder plus its dismiss alarm at prayer time.
Every refresh supersedes the whole previous set.
"""
from __future__ import annotations

import logging
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, List, Mapping, Optional

from dateutil import tz

from prayer_sync.core.task_manager import TaskManager
from prayer_sync.notifications.colors import athan_color, reminder_color
from prayer_sync.notifications.config import (
    PRAYER_NAMES,
    AlertSoundStyle,
    NotificationSettings,
    NotificationState,
    prayer_channel,
    reminder_channel,
)
from prayer_sync.prayer.text import SENTINEL, TIME_PATTERN

ATHAN = 'athan'
REMINDER = 'reminder'
REMINDER_DISMISS = 'reminder_dismiss'


def notification_id(*parts: Any) -> int:
    """Stable positive 31-bit id (Python's str hash is salted per process)."""
    key = ''.join(str(p) for p in parts)
    return zlib.crc32(key.encode('utf-8')) & 0x7FFFFFFF


def epoch_ms(instant: datetime) -> int:
    return int(instant.timestamp() * 1000)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    zone = tz.gettz(name) if name else None
    return zone or tz.tzlocal()


@dataclass
class ScheduledNotificationEntry:
    kind: str
    prayer: str
    fire_at: datetime
    channel_id: str
    title: str
    body: str
    notification_id: int
    payload: Dict[str, Any] = field(default_factory=dict)
    vibration: bool = False
    sound: bool = False
    insistent: bool = False
    color: Optional[str] = None

    @property
    def timer_name(self) -> str:
        return f"{self.kind}:{self.prayer}:{self.fire_at.strftime('%Y%m%d%H%M')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'prayer': self.prayer,
            'fireAt': self.fire_at.isoformat(),
            'channelId': self.channel_id,
            'title': self.title,
            'body': self.body,
            'notificationId': self.notification_id,
            'payload': dict(self.payload),
            'vibration': self.vibration,
            'sound': self.sound,
            'insistent': self.insistent,
            'color': self.color,
        }


class NotificationSink(ABC):
    """Where a fired alarm ends up (desktop notifier, log, push service...)."""

    @abstractmethod
    def show(self, entry: ScheduledNotificationEntry) -> None:
        pass

    @abstractmethod
    def dismiss(self, entry: ScheduledNotificationEntry) -> None:
        pass


class LogNotificationSink(NotificationSink):
    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.active: Dict[int, ScheduledNotificationEntry] = {}

    def show(self, entry: ScheduledNotificationEntry) -> None:
        self.active[entry.notification_id] = entry
        self.logger.info(
            f"[{entry.channel_id}] {entry.title} - {entry.body} "
            f"(vibration={entry.vibration}, sound={entry.sound})"
        )

    def dismiss(self, entry: ScheduledNotificationEntry) -> None:
        if self.active.pop(entry.notification_id, None) is not None:
            self.logger.info(f"Countdown for {entry.prayer} removed")


class AlarmBackend(ABC):
    @abstractmethod
    def arm(self, entry: ScheduledNotificationEntry, now: datetime) -> None:
        """Arm one alarm; raise on failure."""
        pass

    @abstractmethod
    def cancel_all(self) -> int:
        """Cancel every alarm armed by this backend. Returns how many were cancelled."""
        pass


class TimerAlarmBackend(AlarmBackend):
    """Alarms as TaskManager timers, grouped under one name prefix for whole-day cancels."""

    GROUP = "alarm:"

    def __init__(self, task_manager: TaskManager, sink: Optional[NotificationSink] = None):
        self.task_manager = task_manager
        self.sink = sink or LogNotificationSink()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _fire(self, entry: ScheduledNotificationEntry) -> None:
        if entry.kind == REMINDER_DISMISS:
            self.sink.dismiss(entry)
        else:
            self.sink.show(entry)

    def arm(self, entry: ScheduledNotificationEntry, now: datetime) -> None:
        delay = (entry.fire_at - now).total_seconds()
        self.task_manager.schedule_task(
            f"{self.GROUP}{entry.timer_name}",
            lambda e=entry: self._fire(e),
            delay,
            one_time=True,
        )

    def cancel_all(self) -> int:
        return self.task_manager.cancel_group(self.GROUP)


class InMemoryAlarmBackend(AlarmBackend):
    """Records entries without arming anything (dry runs, tests)."""

    def __init__(self):
        self.entries: List[ScheduledNotificationEntry] = []

    def arm(self, entry: ScheduledNotificationEntry, now: datetime) -> None:
        self.entries.append(entry)

    def cancel_all(self) -> int:
        count = len(self.entries)
        self.entries = []
        return count


class NotificationScheduler:
    def __init__(self, backend: AlarmBackend):
        self.backend = backend
        self.logger = logging.getLogger(self.__class__.__name__)
        self.last_entries: List[ScheduledNotificationEntry] = []

    def _now(self, settings: NotificationSettings, now: Optional[datetime]) -> datetime:
        zone = resolve_timezone(settings.timezone)
        if now is None:
            return datetime.now(zone)
        if now.tzinfo is None:
            return now.replace(tzinfo=zone)
        return now

    @staticmethod
    def prayer_instant(time_str: str, now: datetime) -> datetime:
        """Today's instant (in now's timezone) for an HH:MM string."""
        if not TIME_PATTERN.match(time_str or ''):
            raise ValueError(f"not an HH:MM time: {time_str!r}")
        hour, minute = (int(p) for p in time_str.split(':'))
        return now.replace(hour=hour, minute=minute, second=0, microsecond=0)

    def reschedule(self, times: Mapping[str, str], settings: NotificationSettings,
                   now: Optional[datetime] = None) -> int:
        """Cancel the previous cycle's alarms, then schedule today's set."""
        cancelled = self.backend.cancel_all()
        if cancelled:
            self.logger.info(f"Cancelled {cancelled} previously scheduled alarms")
        self.last_entries = []
        return self.schedule_for_day(times, settings, now)

    def schedule_for_day(self, times: Mapping[str, str], settings: NotificationSettings,
                         now: Optional[datetime] = None) -> int:
        now = self._now(settings, now)
        scheduled = 0

        for prayer in PRAYER_NAMES:
            time_str = times.get(prayer.lower()) or times.get(prayer)
            if not time_str or time_str == SENTINEL:
                continue

            state = settings.prayer_state(prayer)
            if state == NotificationState.OFF:
                continue

            try:
                instant = self.prayer_instant(time_str, now)
                if instant <= now:
                    self.logger.debug(f"{prayer} at {time_str} has already passed")
                    continue
                self._arm(self.build_athan(prayer, instant, state, settings), now)
                scheduled += 1
            except Exception as e:
                self.logger.error(f"Failed to schedule {prayer} notification: {e}", exc_info=True)

        if settings.reminders_active:
            scheduled += self.schedule_reminders(times, settings, now)

        self.logger.info(f"Scheduled {scheduled} notifications for {now.date()}")
        return scheduled

    def schedule_reminders(self, times: Mapping[str, str], settings: NotificationSettings,
                           now: datetime) -> int:
        scheduled = 0
        lead = timedelta(minutes=settings.reminder_minutes)

        for prayer in PRAYER_NAMES:
            time_str = times.get(prayer.lower()) or times.get(prayer)
            if not time_str or time_str == SENTINEL:
                continue

            state = settings.reminder_state(prayer)
            if state == NotificationState.OFF:
                continue

            try:
                prayer_at = self.prayer_instant(time_str, now)
                remind_at = prayer_at - lead
                if remind_at <= now:
                    continue
                if prayer_at <= remind_at:
                    continue
                reminder = self.build_reminder(prayer, remind_at, prayer_at, state, settings)
                self._arm(reminder, now)
                self._arm(self.build_dismiss(reminder, prayer_at), now)
                scheduled += 1
            except Exception as e:
                self.logger.error(f"Failed to schedule {prayer} reminder: {e}", exc_info=True)

        return scheduled

    def _arm(self, entry: ScheduledNotificationEntry, now: datetime) -> None:
        self.backend.arm(entry, now)
        self.last_entries.append(entry)

    def build_athan(self, prayer: str, instant: datetime, state: NotificationState,
                    settings: NotificationSettings) -> ScheduledNotificationEntry:
        return ScheduledNotificationEntry(
            kind=ATHAN,
            prayer=prayer,
            fire_at=instant,
            channel_id=prayer_channel(state, settings.sound_style),
            title=f"Time for {prayer} Prayer",
            body=f"{prayer} at {instant.strftime('%H:%M')}",
            notification_id=notification_id(prayer, instant.strftime('%H:%M')),
            payload={
                'type': ATHAN,
                'prayer': prayer,
                'scheduledTime': epoch_ms(instant),
                'state': state.value,
                'hasCountdown': False,
            },
            vibration=state != NotificationState.SILENT,
            sound=state == NotificationState.FULL,
            insistent=state == NotificationState.FULL and settings.sound_style == AlertSoundStyle.FULL_ATHAN,
            color=athan_color(settings.hue),
        )

    def build_reminder(self, prayer: str, remind_at: datetime, prayer_at: datetime,
                       state: NotificationState, settings: NotificationSettings) -> ScheduledNotificationEntry:
        return ScheduledNotificationEntry(
            kind=REMINDER,
            prayer=prayer,
            fire_at=remind_at,
            channel_id=reminder_channel(state),
            title=f"Reminder: {prayer} in {settings.reminder_minutes} minutes",
            body=f"Get ready for {prayer}",
            notification_id=notification_id(prayer, '_reminder_', remind_at.day, remind_at.month),
            payload={
                'type': REMINDER,
                'prayer': prayer,
                'scheduledTime': epoch_ms(remind_at),
                'prayerTime': epoch_ms(prayer_at),
                'state': state.value,
                'hasCountdown': settings.countdown,
            },
            vibration=state != NotificationState.SILENT,
            sound=state == NotificationState.FULL,
            color=reminder_color(settings.hue),
        )

    @staticmethod
    def build_dismiss(reminder: ScheduledNotificationEntry, prayer_at: datetime) -> ScheduledNotificationEntry:
        """Silent alarm at prayer time that removes the reminder's countdown."""
        return ScheduledNotificationEntry(
            kind=REMINDER_DISMISS,
            prayer=reminder.prayer,
            fire_at=prayer_at,
            channel_id=reminder_channel(NotificationState.SILENT),
            title=reminder.title,
            body='',
            notification_id=reminder.notification_id,
            payload={'type': REMINDER_DISMISS, 'prayer': reminder.prayer, 'scheduledTime': epoch_ms(prayer_at)},
        )
