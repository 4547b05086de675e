from .config import AlertSoundStyle, NotificationSettings, NotificationState
from .scheduler import (
    InMemoryAlarmBackend,
    LogNotificationSink,
    NotificationScheduler,
    ScheduledNotificationEntry,
    TimerAlarmBackend,
)

__all__ = [
    "AlertSoundStyle",
    "NotificationSettings",
    "NotificationState",
    "InMemoryAlarmBackend",
    "LogNotificationSink",
    "NotificationScheduler",
    "ScheduledNotificationEntry",
    "TimerAlarmBackend",
]
