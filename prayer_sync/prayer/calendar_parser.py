"""
Monthly calendar parsing for the habous.gov.ma Hijri-month table.

Table layout:
    Row 0: header. Cell[1] Hijri month label, cell[2] one or two solar month
           names ("نونبر / دجنبر").
    Rows 1..30: [weekday, hijriDay, solarDay, fajr, sunrise, dhuhr, asr, maghrib, isha].
           The last Hijri day may carry a text marker ("حسب نتيجة المراقبة")
           instead of a number.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from prayer_sync.prayer.hijri import (
    MOON_SIGHTING_MARKER,
    HijriMonthMatcher,
    extract_solar_months,
    month_name_to_number,
)
from prayer_sync.prayer.text import PRAYER_KEYS, digits_only, normalize_time, sanitize_html_content

logger = logging.getLogger(__name__)


@dataclass
class PrayerDay:
    hijri_day: str
    gregorian_date: Optional[date]
    day_of_week: str
    fajr: str
    sunrise: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str
    solar_month: str
    solar_day: int
    hijri_month: str

    @property
    def times(self) -> Dict[str, str]:
        return {key: getattr(self, key) for key in PRAYER_KEYS}

    @property
    def is_moon_sighting_day(self) -> bool:
        return self.hijri_day == MOON_SIGHTING_MARKER

    def to_dict(self) -> Dict[str, str]:
        return {
            'hijriDay': self.hijri_day,
            'gregorianDate_ISO': self.gregorian_date.isoformat() if self.gregorian_date else '',
            'dayOfWeek_TEXT': self.day_of_week,
            'fajr_HHmm': self.fajr,
            'sunrise_HHmm': self.sunrise,
            'dhuhr_HHmm': self.dhuhr,
            'asr_HHmm': self.asr,
            'maghrib_HHmm': self.maghrib,
            'isha_HHmm': self.isha,
            'solarMonth_TEXT': self.solar_month,
            'solarDay': str(self.solar_day),
            'hijriMonth_TEXT': self.hijri_month,
        }


@dataclass
class MonthlyCalendar:
    city_id: str
    hijri_month: str = ''
    hijri_month_latin: str = ''
    solar_months: List[str] = field(default_factory=list)
    days: Dict[str, PrayerDay] = field(default_factory=dict)
    first_date: Optional[date] = None
    last_date: Optional[date] = None

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def expires_at(self) -> Optional[date]:
        """Exclusive expiry: the calendar must be refetched once today reaches this date."""
        if self.last_date is None:
            return None
        return self.last_date + timedelta(days=1)

    @property
    def is_empty(self) -> bool:
        return not self.days

    def is_expired(self, today: Optional[date] = None) -> bool:
        if self.expires_at is None:
            return True
        return (today or date.today()) >= self.expires_at

    def day_count(self) -> int:
        return self.total_days

    def _ordered_days(self) -> List[PrayerDay]:
        return [day for _, day in sorted(self.days.items(), key=lambda item: int(item[0]))]

    def all_days(self) -> List[PrayerDay]:
        return self._ordered_days()

    def gregorian_dates(self) -> List[date]:
        return [day.gregorian_date for day in self._ordered_days() if day.gregorian_date]

    def day_for_hijri(self, hijri_day: int) -> Optional[PrayerDay]:
        return self.days.get(str(hijri_day))

    def day_for_date(self, target: date) -> Optional[PrayerDay]:
        for day in self.days.values():
            if day.gregorian_date == target:
                return day
        return None

    def today_day(self, today: Optional[date] = None) -> Optional[PrayerDay]:
        return self.day_for_date(today or date.today())

    def tomorrow_day(self, today: Optional[date] = None) -> Optional[PrayerDay]:
        return self.day_for_date((today or date.today()) + timedelta(days=1))

    def to_dict(self) -> Dict:
        result = {
            'cityId': self.city_id,
            'hijriMonth': self.hijri_month,
            'hijriMonthLatin': self.hijri_month_latin,
            'solarMonths': list(self.solar_months),
            'totalDays': self.total_days,
            'days': {key: day.to_dict() for key, day in self.days.items()},
        }
        if self.first_date:
            result['firstDate_ISO'] = self.first_date.isoformat()
        if self.last_date:
            result['lastDate_ISO'] = self.last_date.isoformat()
        if self.expires_at:
            result['expiresAt_ISO'] = self.expires_at.isoformat()
        return result


def determine_target_year(month: int, solar_months: List[str], today: date) -> int:
    """Year of a solar month shown in a calendar header, judged against today's real month."""
    numbers = [n for n in (month_name_to_number(m) for m in solar_months) if n > 0]
    if not numbers:
        return today.year

    if len(numbers) > 1:
        if 12 in numbers and 1 in numbers:
            if today.month == 1:
                return today.year if month == 1 else today.year - 1
            return today.year if month == 12 else today.year + 1
        return today.year

    if numbers[0] < today.month:
        return today.year + 1
    return today.year


class CalendarHtmlParser:
    """Parse one Hijri month table into a MonthlyCalendar. Never raises."""

    MIN_CELLS = 9
    TRANSITION_FROM = 20  # previous solar day must be above this
    TRANSITION_TO = 10    # and the current one at or below this
    SOLAR_DAY_FALLBACK = 21

    def __init__(self, matcher: Optional[HijriMonthMatcher] = None, now: Optional[Callable[[], datetime]] = None):
        self.matcher = matcher or HijriMonthMatcher()
        self.now = now or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

    def parse(self, markup: str, city_id) -> MonthlyCalendar:
        city_id = str(city_id)
        try:
            return self._parse(markup, city_id)
        except Exception as e:
            self.logger.error(f"Error parsing calendar for city {city_id}: {e}", exc_info=True)
            return MonthlyCalendar(city_id=city_id)

    def _parse(self, markup: str, city_id: str) -> MonthlyCalendar:
        soup = BeautifulSoup(markup or '', 'html.parser')
        table = soup.find('table', id='horaire')
        if table is None:
            self.logger.warning("Could not find prayer times table")
            return MonthlyCalendar(city_id=city_id)

        rows = table.find_all('tr')
        if not rows:
            self.logger.warning("Prayer times table has no rows")
            return MonthlyCalendar(city_id=city_id)

        header = [sanitize_html_content(c.get_text()) for c in rows[0].find_all(['td', 'th'])]
        month_label = header[1] if len(header) > 1 else ''
        solar_months = extract_solar_months(header[2]) if len(header) > 2 else []
        self.logger.debug(f"Header: hijri={month_label!r} solar={solar_months}")

        today = self.now().date()
        days = self._parse_rows(rows[1:], month_label, solar_months, today)
        if not days:
            self.logger.warning("No prayer days parsed from table")
            return MonthlyCalendar(city_id=city_id, hijri_month=month_label, solar_months=solar_months)

        dates = [d.gregorian_date for d in days.values() if d.gregorian_date]
        calendar = MonthlyCalendar(
            city_id=city_id,
            hijri_month=month_label,
            hijri_month_latin=self.matcher.transliterate(month_label),
            solar_months=solar_months,
            days=days,
            first_date=min(dates) if dates else None,
            last_date=max(dates) if dates else None,
        )
        self.logger.info(
            f"Parsed {calendar.total_days} days ({calendar.hijri_month_latin}, {', '.join(solar_months)}), "
            f"expires {calendar.expires_at}"
        )
        return calendar

    def _parse_rows(self, rows, month_label: str, solar_months: List[str], today: date) -> Dict[str, PrayerDay]:
        days: Dict[str, PrayerDay] = {}
        previous_solar: Optional[int] = None
        transitioned = False
        max_hijri = 0

        for index, row in enumerate(rows, start=1):
            cells = [sanitize_html_content(td.get_text()) for td in row.find_all('td')]
            if len(cells) < self.MIN_CELLS:
                self.logger.debug(f"Skipping row {index}: {len(cells)} cells")
                continue

            try:
                hijri_num = digits_only(cells[1])
                solar_num = digits_only(cells[2])
                if not solar_num:
                    solar_num = self.SOLAR_DAY_FALLBACK

                moon_day = hijri_num is None
                if moon_day:
                    hijri_num = max_hijri + 1
                    self.logger.debug(f"Moon-sighting day after Hijri day {max_hijri}")
                else:
                    max_hijri = hijri_num
                    if (not transitioned and previous_solar is not None
                            and previous_solar > self.TRANSITION_FROM and solar_num <= self.TRANSITION_TO):
                        transitioned = True
                        self.logger.debug(
                            f"Month transition at Hijri day {hijri_num} (solar {previous_solar} -> {solar_num})"
                        )
                    previous_solar = solar_num

                solar_month = self._solar_month_for(solar_months, transitioned)
                days[str(hijri_num)] = PrayerDay(
                    hijri_day=MOON_SIGHTING_MARKER if moon_day else str(hijri_num),
                    gregorian_date=self._build_date(solar_month, solar_num, solar_months, today),
                    day_of_week=cells[0],
                    fajr=normalize_time(cells[3]),
                    sunrise=normalize_time(cells[4]),
                    dhuhr=normalize_time(cells[5]),
                    asr=normalize_time(cells[6]),
                    maghrib=normalize_time(cells[7]),
                    isha=normalize_time(cells[8]),
                    solar_month=solar_month,
                    solar_day=solar_num,
                    hijri_month=month_label,
                )
            except Exception as e:
                self.logger.warning(f"Skipping malformed row {index}: {e}")
        return days

    @staticmethod
    def _solar_month_for(solar_months: List[str], transitioned: bool) -> str:
        if not solar_months:
            return ''
        if len(solar_months) > 1 and transitioned:
            return solar_months[1]
        return solar_months[0]

    def _build_date(self, solar_month: str, solar_day: int, solar_months: List[str], today: date) -> Optional[date]:
        month = month_name_to_number(solar_month)
        if month <= 0 or solar_day <= 0:
            return None
        try:
            return date(determine_target_year(month, solar_months, today), month, solar_day)
        except ValueError as e:
            self.logger.warning(f"Invalid date {solar_month} {solar_day}: {e}")
            return None
