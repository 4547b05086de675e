"""
Daily prayer times from the habous.gov.ma daily page
(horaire-api.php?ville=<cityId>): a table of label/value cell pairs.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from bs4 import BeautifulSoup

from prayer_sync.prayer.text import PRAYER_KEYS, SENTINEL, normalize_time, sanitize_html_content

# (prayer key, native-script term, English term); first match wins
LABELS: Tuple[Tuple[str, str, str], ...] = (
    ('fajr', 'فجر', 'fajr'),
    ('sunrise', 'شروق', 'sunrise'),
    ('dhuhr', 'ظهر', 'dhuhr'),
    ('asr', 'عصر', 'asr'),
    ('maghrib', 'مغرب', 'maghrib'),
    ('isha', 'عشاء', 'isha'),
)

CITY_HEADING_RE = re.compile(r'مواقيت الصلاة لمدينة</h2>\s*<h2[^>]*>([^<]+)</h2>', re.IGNORECASE)


@dataclass
class DailyPrayerTimes:
    date: str
    city_name: str = ''
    times: Dict[str, str] = field(default_factory=lambda: {key: SENTINEL for key in PRAYER_KEYS})

    @property
    def is_complete(self) -> bool:
        return all(self.times.get(key, SENTINEL) != SENTINEL for key in PRAYER_KEYS)

    def to_dict(self) -> Dict[str, str]:
        result = dict(self.times)
        result['date'] = self.date
        result['cityName'] = self.city_name
        return result


def match_label(label: str) -> Optional[str]:
    label = (label or '').lower()
    for key, native, english in LABELS:
        if native in label or english in label:
            return key
    return None


class DailyHtmlParser:
    """Parse one day's times. Any failure leaves the sentinel in place."""

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.today = today or date.today
        self.logger = logging.getLogger(self.__class__.__name__)

    def parse(self, markup: str, city_name: str = '') -> DailyPrayerTimes:
        result = DailyPrayerTimes(date=self.today().isoformat(), city_name=city_name or '')
        try:
            soup = BeautifulSoup(markup or '', 'html.parser')
            table = soup.find('table', class_='horaire')
            if table is None:
                self.logger.warning("No horaire table found")
                return result

            for row in table.find_all('tr'):
                cells = [sanitize_html_content(td.get_text()) for td in row.find_all('td')]
                for i in range(0, len(cells) - 1, 2):
                    key = match_label(cells[i])
                    if key is not None:
                        result.times[key] = normalize_time(cells[i + 1])

            if not city_name:
                match = CITY_HEADING_RE.search(markup)
                if match:
                    result.city_name = sanitize_html_content(match.group(1))

            self.logger.debug(f"Parsed daily times: {result.times} ({result.city_name})")
            return result
        except Exception as e:
            self.logger.error(f"Error parsing daily prayer times: {e}", exc_info=True)
            return DailyPrayerTimes(date=self.today().isoformat(), city_name=city_name or '')
