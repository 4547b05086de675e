"""
The denormalized record a home-screen surface reads: six times plus what it
needs to draw them (source, location, theme).
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from prayer_sync.prayer.cities import CityRepository, latin_city_name
from prayer_sync.prayer.resolver import PrayerSource, ResolvedPrayerTimes
from prayer_sync.prayer.text import SENTINEL

WIDGET_CACHE_KEY = "widget_info_cache"
WIDGET_LAST_UPDATE_KEY = "widget_last_update_time"

SOURCE_LABELS = {
    PrayerSource.SCRAPED_REMOTE: "ministry",
    PrayerSource.OFFLINE_CALCULATED: "offline",
    PrayerSource.API_REMOTE: "adhan",
    PrayerSource.NONE: "none",
}

# record attribute -> JSON key
JSON_KEYS = {
    "fajr": "fajr",
    "sunrise": "sunrise",
    "dhuhr": "dhuhr",
    "asr": "asr",
    "maghrib": "maghrib",
    "isha": "isha",
    "source": "source",
    "location": "location",
    "hue": "hue",
    "is_dark_mode": "isDarkMode",
    "bg_transparency": "bgTransparency",
    "cache_date": "cacheDateDdMmYyyy",
    "cache_timestamp_ms": "cacheTimestampMs",
}


@dataclass
class DisplaySettings:
    hue: float = 260.0
    theme_mode: str = "light"
    bg_transparency: float = 1.0
    city_name: str = "Casablanca"
    latitude: str = ""
    longitude: str = ""

    @property
    def is_dark_mode(self) -> bool:
        return (self.theme_mode or "").lower() == "dark"

    @classmethod
    def from_config(cls, display: Dict[str, Any], prayer: Dict[str, Any] = None) -> "DisplaySettings":
        display = display or {}
        prayer = prayer or {}
        return cls(
            hue=float(display.get("hue", 260.0)),
            theme_mode=str(display.get("theme_mode", "light")),
            bg_transparency=float(display.get("bg_transparency", 1.0)),
            city_name=str(prayer.get("city_name", "Casablanca")),
            latitude=str(prayer.get("latitude", "")),
            longitude=str(prayer.get("longitude", "")),
        )


@dataclass
class WidgetCacheRecord:
    fajr: str = SENTINEL
    sunrise: str = SENTINEL
    dhuhr: str = SENTINEL
    asr: str = SENTINEL
    maghrib: str = SENTINEL
    isha: str = SENTINEL
    source: str = "none"
    location: str = "Unknown"
    hue: float = 260.0
    is_dark_mode: bool = False
    bg_transparency: float = 1.0
    cache_date: str = ""
    cache_timestamp_ms: int = 0

    @property
    def written_at(self) -> datetime:
        return datetime.fromtimestamp(self.cache_timestamp_ms / 1000)

    def is_fresh(self, today: Optional[date] = None) -> bool:
        """Fresh means written today (local calendar date)."""
        if not self.cache_timestamp_ms:
            return False
        return self.written_at.date() == (today or date.today())

    def to_dict(self) -> Dict[str, Any]:
        return {JSON_KEYS[name]: value for name, value in asdict(self).items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WidgetCacheRecord":
        defaults = cls()
        values = {}
        for name, key in JSON_KEYS.items():
            values[name] = data.get(key, getattr(defaults, name))
        values["hue"] = float(values["hue"])
        values["is_dark_mode"] = bool(values["is_dark_mode"])
        values["bg_transparency"] = float(values["bg_transparency"])
        values["cache_timestamp_ms"] = int(values["cache_timestamp_ms"] or 0)
        return cls(**values)

    @classmethod
    def from_json(cls, raw: str) -> "WidgetCacheRecord":
        return cls.from_dict(json.loads(raw))

    @classmethod
    def from_resolved(
        cls,
        resolved: ResolvedPrayerTimes,
        display: DisplaySettings,
        cities: Optional[CityRepository] = None,
        now: Optional[datetime] = None,
    ) -> "WidgetCacheRecord":
        now = now or datetime.now()
        times = resolved.times
        source = SOURCE_LABELS.get(resolved.source_used, "none")

        if resolved.source_used in (PrayerSource.OFFLINE_CALCULATED, PrayerSource.API_REMOTE):
            location = f"{display.latitude}, {display.longitude}"
        else:
            name = resolved.city_name or display.city_name
            location = cities.latin_name(name) if cities is not None else latin_city_name(name)

        return cls(
            fajr=times.get("fajr", SENTINEL),
            sunrise=times.get("sunrise", SENTINEL),
            dhuhr=times.get("dhuhr", SENTINEL),
            asr=times.get("asr", SENTINEL),
            maghrib=times.get("maghrib", SENTINEL),
            isha=times.get("isha", SENTINEL),
            source=source,
            location=location or "Unknown",
            hue=display.hue,
            is_dark_mode=display.is_dark_mode,
            bg_transparency=display.bg_transparency,
            cache_date=now.strftime("%d/%m/%Y"),
            cache_timestamp_ms=int(now.timestamp() * 1000),
        )
