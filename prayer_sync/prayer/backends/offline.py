from datetime import date, datetime
from typing import Any, Dict, Optional, Protocol
from zoneinfo import ZoneInfo

from prayer_sync.prayer.backends.base import PrayerBackend
from prayer_sync.prayer.errors import EmptyResult
from prayer_sync.prayer.text import PRAYER_KEYS

DEFAULT_TIMEZONE = "Africa/Casablanca"


class OfflineCalculator(Protocol):
    """Astronomical calculation: coordinates + date -> {fajr..isha: "HH:MM"}."""

    def __call__(self, latitude: float, longitude: float, day: date) -> Dict[str, str]:
        ...


class AdhanpyCalculator:
    """OfflineCalculator backed by adhanpy: Fajr 19°, Isha 17°, Shafi, twilight-angle rule."""

    FAJR_ANGLE = 19.0
    ISHA_ANGLE = 17.0

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        self.time_zone = ZoneInfo(timezone)

    def _parameters(self):
        from adhanpy.calculation.CalculationParameters import CalculationParameters
        from adhanpy.calculation.HighLatitudeRule import HighLatitudeRule
        from adhanpy.calculation.Madhab import Madhab

        parameters = CalculationParameters(fajr_angle=self.FAJR_ANGLE, isha_angle=self.ISHA_ANGLE)
        parameters.madhab = Madhab.SHAFI
        parameters.high_latitude_rule = HighLatitudeRule.TWILIGHT_ANGLE
        return parameters

    def __call__(self, latitude: float, longitude: float, day: date) -> Dict[str, str]:
        from adhanpy.PrayerTimes import PrayerTimes

        pt = PrayerTimes(
            (latitude, longitude),
            datetime(day.year, day.month, day.day),
            calculation_parameters=self._parameters(),
            time_zone=self.time_zone,
        )
        return {key: getattr(pt, key).strftime('%H:%M') for key in PRAYER_KEYS}


class OfflineBackend(PrayerBackend):
    """Computes times locally; no network."""

    name = "offline"

    def __init__(self, config: Dict[str, Any], calculator: Optional[OfflineCalculator] = None):
        super().__init__(config)
        self.calculator = calculator or AdhanpyCalculator(config.get('timezone') or DEFAULT_TIMEZONE)

    def fetch_times(self, settings: Any, day: date) -> Dict[str, str]:
        times = self.calculator(settings.lat, settings.lon, day)
        if not times:
            raise EmptyResult("offline calculator returned no times")
        # calculators may key by display name ("Fajr")
        normalized = {str(k).lower(): v for k, v in times.items()}
        missing = [key for key in PRAYER_KEYS if not normalized.get(key)]
        if missing:
            raise EmptyResult(f"offline calculator missing {missing}")
        return {key: normalized[key] for key in PRAYER_KEYS}
