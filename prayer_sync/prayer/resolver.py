"""
Source arbitration: ministry page first (if preferred), then the offline
calculator (if enabled with coordinates), then the AlAdhan API. Steps run one
after the other; the first usable answer wins. resolve() never raises.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

import requests
from dateutil import tz

from prayer_sync.prayer.backends import get_backend
from prayer_sync.prayer.errors import PrayerSourceError, TotalFailure, ValidationFailure
from prayer_sync.prayer.text import PRAYER_KEYS, SENTINEL, normalize_time, sentinel_times


class TimesSource(Protocol):
    """What the resolver needs from a source."""

    def fetch_times(self, settings: "ResolverSettings", day: date) -> Dict[str, str]:
        ...


class PrayerSource(str, Enum):
    SCRAPED_REMOTE = "scraped_remote"
    OFFLINE_CALCULATED = "offline_calculated"
    API_REMOTE = "api_remote"
    NONE = "none"


def today_in(zone_name: Optional[str], now: Optional[datetime] = None) -> date:
    """Calendar date in the named zone; host-local when the name is empty or unknown."""
    zone = (tz.gettz(zone_name) if zone_name else None) or tz.tzlocal()
    if now is None:
        return datetime.now(zone).date()
    return now.astimezone(zone).date()


def _to_float(value: Any) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0


@dataclass
class ResolverSettings:
    use_ministry: bool = True
    offline_mode: bool = False
    city_id: str = "58"
    city_name: str = "Casablanca"
    latitude: str = "0"
    longitude: str = "0"

    @property
    def lat(self) -> float:
        return _to_float(self.latitude)

    @property
    def lon(self) -> float:
        return _to_float(self.longitude)

    @property
    def has_coordinates(self) -> bool:
        return self.lat != 0.0 and self.lon != 0.0

    @property
    def coordinate_label(self) -> str:
        return f"{self.lat:.4f}, {self.lon:.4f}"

    @classmethod
    def from_config(cls, prayer_config: Dict[str, Any]) -> "ResolverSettings":
        prayer_config = prayer_config or {}
        return cls(
            use_ministry=bool(prayer_config.get("use_ministry", True)),
            offline_mode=bool(prayer_config.get("offline_mode", False)),
            city_id=str(prayer_config.get("city_id", "58")),
            city_name=str(prayer_config.get("city_name", "Casablanca")),
            latitude=str(prayer_config.get("latitude", "0")),
            longitude=str(prayer_config.get("longitude", "0")),
        )


@dataclass
class ResolvedPrayerTimes:
    source_used: PrayerSource
    times: Dict[str, str]
    date: str
    input_settings: Dict[str, Any] = field(default_factory=dict)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.source_used != PrayerSource.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source_used.value,
            'inputSettings': dict(self.input_settings),
            'times': dict(self.times),
            'date': self.date,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'cityName': self.city_name,
        }


class SourceResolver:
    def __init__(
        self,
        ministry: TimesSource,
        offline: TimesSource,
        api: TimesSource,
        today: Optional[Callable[[], date]] = None,
        timezone: Optional[str] = None,
    ):
        self.ministry = ministry
        self.offline = offline
        self.api = api
        self.timezone = timezone
        # same zone the alarms are built in
        self.today = today or (lambda: today_in(self.timezone))
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, prayer_config: Dict[str, Any], cache_dir: Optional[str] = None,
                    session: Optional[requests.Session] = None) -> "SourceResolver":
        cfg = dict(prayer_config or {})
        if cache_dir and "cache_dir" not in cfg:
            cfg["cache_dir"] = cache_dir
        session = session or requests.Session()
        return cls(
            ministry=get_backend("ministry", cfg, session=session),
            offline=get_backend("offline", cfg),
            api=get_backend("aladhan", cfg, session=session),
            timezone=cfg.get("timezone"),
        )

    def resolve(self, settings: ResolverSettings) -> ResolvedPrayerTimes:
        day = self.today()
        last_error: Optional[Exception] = None

        if settings.use_ministry:
            try:
                times = self.ministry.fetch_times(settings, day)
                self.logger.info(f"Using ministry times for city {settings.city_id}")
                return ResolvedPrayerTimes(
                    source_used=PrayerSource.SCRAPED_REMOTE,
                    times=times,
                    date=day.isoformat(),
                    input_settings={'cityId': settings.city_id, 'cityName': settings.city_name},
                    city_name=settings.city_name,
                )
            except (PrayerSourceError, requests.RequestException, ValueError) as e:
                last_error = e
                self.logger.warning(f"Ministry source failed, falling back: {e}")
            except Exception as e:
                last_error = e
                self.logger.error(f"Unexpected ministry source error: {e}", exc_info=True)

        if settings.offline_mode and settings.has_coordinates:
            try:
                times = self.offline.fetch_times(settings, day)
                self.logger.info(f"Using offline calculation for {settings.coordinate_label}")
                return ResolvedPrayerTimes(
                    source_used=PrayerSource.OFFLINE_CALCULATED,
                    times=times,
                    date=day.isoformat(),
                    input_settings={'latitude': settings.lat, 'longitude': settings.lon},
                    latitude=settings.lat,
                    longitude=settings.lon,
                    city_name=settings.coordinate_label,
                )
            except (PrayerSourceError, ValueError) as e:
                last_error = e
                self.logger.warning(f"Offline calculation failed, falling back: {e}")
            except Exception as e:
                last_error = e
                self.logger.error(f"Unexpected offline calculation error: {e}", exc_info=True)

        try:
            times = self._validated(self.api.fetch_times(settings, day))
            input_settings: Dict[str, Any] = {'latitude': settings.lat, 'longitude': settings.lon}
            if settings.city_name:
                input_settings['cityName'] = settings.city_name
            self.logger.info(f"Using AlAdhan API for {settings.coordinate_label}")
            return ResolvedPrayerTimes(
                source_used=PrayerSource.API_REMOTE,
                times=times,
                date=day.isoformat(),
                input_settings=input_settings,
                latitude=settings.lat,
                longitude=settings.lon,
                city_name=settings.coordinate_label if settings.has_coordinates else settings.city_name,
            )
        except (PrayerSourceError, requests.RequestException, ValueError) as e:
            last_error = e
            self.logger.warning(f"AlAdhan API failed: {e}")
        except Exception as e:
            last_error = e
            self.logger.error(f"Unexpected AlAdhan API error: {e}", exc_info=True)

        failure = TotalFailure(f"All sources failed: {last_error}")
        self.logger.error(str(failure))
        return ResolvedPrayerTimes(
            source_used=PrayerSource.NONE,
            times=sentinel_times(),
            date=day.isoformat(),
            input_settings={'error': 'All sources failed', 'lastError': str(last_error)},
        )

    @staticmethod
    def _validated(times: Dict[str, str]) -> Dict[str, str]:
        """Normalize every time; an answer with no valid time at all is a ValidationFailure."""
        normalized = {key: normalize_time(times.get(key)) for key in PRAYER_KEYS}
        if all(value == SENTINEL for value in normalized.values()):
            raise ValidationFailure(f"no valid times in {times}")
        return normalized
