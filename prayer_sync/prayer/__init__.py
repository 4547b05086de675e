from .calendar_parser import CalendarHtmlParser, MonthlyCalendar, PrayerDay
from .daily_parser import DailyHtmlParser, DailyPrayerTimes
from .resolver import PrayerSource, ResolvedPrayerTimes, ResolverSettings, SourceResolver

__all__ = [
    "CalendarHtmlParser",
    "MonthlyCalendar",
    "PrayerDay",
    "DailyHtmlParser",
    "DailyPrayerTimes",
    "PrayerSource",
    "ResolvedPrayerTimes",
    "ResolverSettings",
    "SourceResolver",
]
