from datetime import date, datetime
from typing import Any, Dict

from prayer_sync.prayer.backends.base import PrayerBackend
from prayer_sync.prayer.errors import EmptyResult, ParseFailure
from prayer_sync.prayer.text import PRAYER_KEYS, strip_timezone_suffix

API_URL = "https://api.aladhan.com/v1/timings"


class AladhanBackend(PrayerBackend):
    """Prayer times from api.aladhan.com with the Moroccan method settings.

    method=99 (custom): Fajr 19°, Isha 17°, Shafi madhab, Isha +5 min.
    """

    name = "aladhan"

    PRAYER_NAMES = {
        'fajr': 'Fajr',
        'sunrise': 'Sunrise',
        'dhuhr': 'Dhuhr',
        'asr': 'Asr',
        'maghrib': 'Maghrib',
        'isha': 'Isha',
    }

    METHOD_PARAMS = {
        'method': 99,
        'methodSettings': '19,null,17',
        'school': 0,
        'latitudeAdjustmentMethod': 0,
        'midnightMethod': 'Standard',
        # Fajr,Sunrise,Dhuhr,Asr,Maghrib,Isha,Imsak,Midnight,Firstthird
        'tune': '0,0,0,0,0,5,0,0,0',
    }

    def __init__(self, config: Dict[str, Any], session=None):
        super().__init__(config, session)
        self.api_url = (config.get('api_url') or API_URL).rstrip('/')

    @staticmethod
    def day_timestamp(day: date) -> int:
        """Unix timestamp of local midnight for day."""
        return int(datetime(day.year, day.month, day.day).timestamp())

    def build_request(self, latitude: float, longitude: float, day: date):
        url = f"{self.api_url}/{self.day_timestamp(day)}"
        params = {'latitude': latitude, 'longitude': longitude}
        params.update(self.METHOD_PARAMS)
        return url, params

    def get_prayer_times(self, latitude: float, longitude: float, day: date) -> Dict[str, str]:
        url, params = self.build_request(latitude, longitude, day)
        response = self._get(url, params=params)
        try:
            data = response.json()
        except ValueError as e:
            raise ParseFailure(f"aladhan returned invalid JSON: {e}") from e

        if not isinstance(data, dict) or data.get('code') != 200 or not data.get('data'):
            raise EmptyResult(f"Invalid response from AlAdhan API: {data.get('status') if isinstance(data, dict) else data}")

        timings = data['data'].get('timings')
        if not timings:
            raise EmptyResult("AlAdhan response has no timings")

        meta = data['data'].get('meta') or {}
        method = meta.get('method') or {}
        self.logger.debug(
            f"AlAdhan meta: lat={meta.get('latitude')} lon={meta.get('longitude')} method={method.get('id')}"
        )

        prayer_times = {key: strip_timezone_suffix(timings.get(self.PRAYER_NAMES[key])) for key in PRAYER_KEYS}
        self.logger.info(f"AlAdhan prayer times: {prayer_times}")
        return prayer_times

    def fetch_times(self, settings: Any, day: date) -> Dict[str, str]:
        return self.get_prayer_times(settings.lat, settings.lon, day)
