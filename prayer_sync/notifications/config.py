"""
Notification states, alert sound styles, and the channel lookup tables.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Tuple

PRAYER_NAMES = ('Fajr', 'Sunrise', 'Dhuhr', 'Asr', 'Maghrib', 'Isha')


class NotificationState(IntEnum):
    OFF = -1
    SILENT = 0
    VIBRATE = 1
    FULL = 2

    @classmethod
    def from_value(cls, value: Any) -> "NotificationState":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.FULL


class AlertSoundStyle(IntEnum):
    SYSTEM = 0
    SHORT_ATHAN = 1
    FULL_ATHAN = 2

    @classmethod
    def from_value(cls, value: Any) -> "AlertSoundStyle":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.SYSTEM


PRAYER_CHANNEL_SILENT = 'pray_times_channel_silent'
PRAYER_CHANNEL_VIBRATE = 'pray_times_channel_vibrate'
PRAYER_CHANNEL_FULL = 'pray_times_channel_full_v2'
ATHAN_CHANNEL_SHORT = 'athan_channel_short_v2'
ATHAN_CHANNEL_NORMAL = 'athan_channel_normal_v2'
REMINDER_CHANNEL_SILENT = 'prayer_warnings_channel_silent'
REMINDER_CHANNEL_VIBRATE = 'prayer_warnings_channel_vibrate'
REMINDER_CHANNEL_FULL = 'prayer_warnings_channel_full'

# (state, style) -> channel; OFF maps to the silent channel but is never scheduled
PRAYER_CHANNELS: Dict[Tuple[NotificationState, AlertSoundStyle], str] = {}
for _style in AlertSoundStyle:
    PRAYER_CHANNELS[(NotificationState.OFF, _style)] = PRAYER_CHANNEL_SILENT
    PRAYER_CHANNELS[(NotificationState.SILENT, _style)] = PRAYER_CHANNEL_SILENT
    PRAYER_CHANNELS[(NotificationState.VIBRATE, _style)] = PRAYER_CHANNEL_VIBRATE
PRAYER_CHANNELS[(NotificationState.FULL, AlertSoundStyle.SYSTEM)] = PRAYER_CHANNEL_FULL
PRAYER_CHANNELS[(NotificationState.FULL, AlertSoundStyle.SHORT_ATHAN)] = ATHAN_CHANNEL_SHORT
PRAYER_CHANNELS[(NotificationState.FULL, AlertSoundStyle.FULL_ATHAN)] = ATHAN_CHANNEL_NORMAL

REMINDER_CHANNELS: Dict[NotificationState, str] = {
    NotificationState.OFF: REMINDER_CHANNEL_SILENT,
    NotificationState.SILENT: REMINDER_CHANNEL_SILENT,
    NotificationState.VIBRATE: REMINDER_CHANNEL_VIBRATE,
    NotificationState.FULL: REMINDER_CHANNEL_FULL,
}


def prayer_channel(state: NotificationState, style: AlertSoundStyle = AlertSoundStyle.SYSTEM) -> str:
    return PRAYER_CHANNELS[(state, style)]


def reminder_channel(state: NotificationState) -> str:
    return REMINDER_CHANNELS[state]


def _state_map(raw: Any) -> Dict[str, NotificationState]:
    if not isinstance(raw, dict):
        return {}
    return {str(name): NotificationState.from_value(value) for name, value in raw.items()}


@dataclass
class NotificationSettings:
    state: NotificationState = NotificationState.FULL
    sound_style: AlertSoundStyle = AlertSoundStyle.SYSTEM
    advanced_control: bool = False
    prayer_states: Dict[str, NotificationState] = field(default_factory=dict)
    reminder_states: Dict[str, NotificationState] = field(default_factory=dict)
    reminder_enabled: bool = False
    reminder_minutes: int = 10
    countdown: bool = True
    hue: float = 260.0
    timezone: str = "Africa/Casablanca"

    def prayer_state(self, prayer: str) -> NotificationState:
        if self.advanced_control:
            return self.prayer_states.get(prayer, NotificationState.FULL)
        return self.state

    def reminder_state(self, prayer: str) -> NotificationState:
        if self.advanced_control:
            return self.reminder_states.get(prayer, NotificationState.FULL)
        return self.state

    @property
    def reminders_active(self) -> bool:
        return self.reminder_enabled and self.reminder_minutes > 0

    @classmethod
    def from_config(cls, notifications: Dict[str, Any], display: Dict[str, Any] = None,
                    timezone: str = "Africa/Casablanca") -> "NotificationSettings":
        notifications = notifications or {}
        display = display or {}
        return cls(
            state=NotificationState.from_value(notifications.get('state', 2)),
            sound_style=AlertSoundStyle.from_value(notifications.get('sound_style', 0)),
            advanced_control=bool(notifications.get('advanced_control', False)),
            prayer_states=_state_map(notifications.get('prayer_states')),
            reminder_states=_state_map(notifications.get('reminder_states')),
            reminder_enabled=bool(notifications.get('reminder_enabled', False)),
            reminder_minutes=int(notifications.get('reminder_minutes', 10) or 0),
            countdown=bool(notifications.get('countdown', True)),
            hue=float(display.get('hue', 260.0)),
            timezone=timezone or "Africa/Casablanca",
        )
