from datetime import date
from typing import Any, Dict, Optional

import requests

from prayer_sync.prayer.backends.base import PrayerBackend
from prayer_sync.prayer.calendar_parser import CalendarHtmlParser, MonthlyCalendar
from prayer_sync.prayer.daily_parser import DailyHtmlParser, DailyPrayerTimes
from prayer_sync.prayer.errors import EmptyResult, ParseFailure

DAILY_URL = "https://www.habous.gov.ma/prieres/horaire-api.php"
MONTHLY_URL = "https://www.habous.gov.ma/prieres/horaire_hijri_2.php"


class MinistryBackend(PrayerBackend):
    """Scraped source: the Moroccan Ministry of Habous prayer pages."""

    name = "ministry"

    def __init__(
        self,
        config: Dict[str, Any],
        session: Optional[requests.Session] = None,
        daily_parser: Optional[DailyHtmlParser] = None,
        calendar_parser: Optional[CalendarHtmlParser] = None,
    ):
        super().__init__(config, session)
        self.daily_url = config.get('daily_url') or DAILY_URL
        self.monthly_url = config.get('monthly_url') or MONTHLY_URL
        self.daily_parser = daily_parser or DailyHtmlParser()
        self.calendar_parser = calendar_parser or CalendarHtmlParser()

    def _city_url(self, base: str, city_id: str) -> str:
        return f"{base}?ville={city_id}"

    def fetch_daily(self, city_id: str, city_name: str = '', force_fetch: bool = False,
                    today: Optional[date] = None) -> DailyPrayerTimes:
        """Fetch and parse today's page. Raises EmptyResult unless all six times are valid."""
        url = self._city_url(self.daily_url, city_id)
        from_cache = False
        markup = None
        if not force_fetch:
            markup = self.cache_helper.get_cached_content(url, today=today)
            from_cache = markup is not None
        if markup is None:
            markup = self._fetch_page_content(url, force_fetch=True)

        daily = self.daily_parser.parse(markup, city_name)
        if not daily.is_complete:
            if from_cache:
                self.cache_helper.clear(url)
            raise EmptyResult(f"ministry page for city {city_id} has missing times: {daily.times}")

        if not from_cache:
            self.cache_helper.save_to_cache(url, markup)
        return daily

    def fetch_times(self, settings: Any, day: date) -> Dict[str, str]:
        daily = self.fetch_daily(settings.city_id, settings.city_name, today=day)
        return dict(daily.times)

    def fetch_monthly_calendar(self, city_id: str, force_fetch: bool = False,
                               today: Optional[date] = None) -> MonthlyCalendar:
        """Fetch the current Hijri month. The page stays cached until the calendar expires."""
        url = self._city_url(self.monthly_url, city_id)
        markup = self._fetch_page_content(url, force_fetch=force_fetch, today=today)
        calendar = self.calendar_parser.parse(markup, city_id)
        if calendar.is_empty:
            self.cache_helper.clear(url)
            raise ParseFailure(f"no calendar rows for city {city_id}")
        if calendar.expires_at is not None and not calendar.is_expired(today):
            self.cache_helper.save_to_cache(url, markup, expires=calendar.expires_at)
        return calendar
