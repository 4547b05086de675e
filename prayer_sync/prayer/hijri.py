"""
Arabic month names: Hijri month matching/transliteration and solar month
extraction from calendar headers.
"""
import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MOON_SIGHTING_MARKER = "☽"

# Known spellings -> Hijri month number
HIJRI_MONTH_SPELLINGS: Dict[str, int] = {
    'محرم': 1,
    'صفر': 2,
    'ربيع الأول': 3, 'ربيع اول': 3,
    'ربيع الثاني': 4, 'ربيع الآخر': 4, 'ربيع ثاني': 4, 'ربيع آخر': 4,
    'جمادى الأول': 5, 'جمادى الأولى': 5, 'جمادى أول': 5,
    'جمادى الآخر': 6, 'جمادى الآخرة': 6, 'جمادى الثانية': 6, 'جمادى ثانية': 6, 'جمادى ثاني': 6,
    'رجب': 7,
    'شعبان': 8,
    'رمضان': 9,
    'شوال': 10,
    'ذو القعدة': 11, 'ذي القعدة': 11,
    'ذو الحجة': 12, 'ذي الحجة': 12,
}

HIJRI_TRANSLITERATIONS = (
    '', 'Muharram', 'Safar', "Rabi' al-Awwal", "Rabi' al-Thani",
    'Jumada al-Ula', 'Jumada al-Akhirah', 'Rajab', "Sha'ban",
    'Ramadan', 'Shawwal', "Dhu al-Qa'dah", 'Dhu al-Hijjah',
)

# Mashreq and Moroccan spellings of the Gregorian months
SOLAR_MONTH_SPELLINGS: Dict[str, str] = {
    'يناير': 'January',
    'فبراير': 'February',
    'مارس': 'March',
    'أبريل': 'April', 'ابريل': 'April',
    'مايو': 'May', 'ماي': 'May', 'ماى': 'May',
    'يونيو': 'June',
    'يوليوز': 'July', 'يوليو': 'July',
    'غشت': 'August', 'أغسطس': 'August',
    'شتنبر': 'September', 'سبتمبر': 'September',
    'أكتوبر': 'October', 'اكتوبر': 'October',
    'نونبر': 'November', 'نوفمبر': 'November',
    'دجنبر': 'December', 'ديسمبر': 'December',
}

MONTH_NUMBERS: Dict[str, int] = {
    'January': 1, 'February': 2, 'March': 3, 'April': 4,
    'May': 5, 'June': 6, 'July': 7, 'August': 8,
    'September': 9, 'October': 10, 'November': 11, 'December': 12,
}

WEEKDAYS: Dict[str, str] = {
    'الأحد': 'Sunday',
    'الإثنين': 'Monday',
    'الاثنين': 'Monday',
    'الثلاثاء': 'Tuesday',
    'الأربعاء': 'Wednesday',
    'الخميس': 'Thursday',
    'الجمعة': 'Friday',
    'السبت': 'Saturday',
}


def levenshtein(s: str, t: str) -> int:
    """Edit distance between s and t (insert, delete, substitute all cost 1)."""
    if s == t:
        return 0
    if not s:
        return len(t)
    if not t:
        return len(s)

    previous = list(range(len(t) + 1))
    for i, s_char in enumerate(s):
        current = [i + 1] + [0] * len(t)
        for j, t_char in enumerate(t):
            cost = 0 if s_char == t_char else 1
            current[j + 1] = min(current[j] + 1, previous[j + 1] + 1, previous[j] + cost)
        previous = current
    return previous[len(t)]


class HijriMonthMatcher:
    """Resolve a (possibly misspelt) Arabic Hijri month label to its month number."""

    MAX_DISTANCE = 2

    def __init__(self, spellings: Optional[Dict[str, int]] = None):
        self.spellings = spellings or HIJRI_MONTH_SPELLINGS

    def month_number(self, text: str) -> Optional[int]:
        clean = (text or "").strip()
        if not clean:
            return None
        if clean in self.spellings:
            return self.spellings[clean]

        best_match = None
        min_distance = self.MAX_DISTANCE + 1
        for spelling in self.spellings:
            distance = levenshtein(clean, spelling)
            # strict < keeps the first spelling on ties
            if distance <= self.MAX_DISTANCE and distance < min_distance:
                min_distance = distance
                best_match = spelling

        if best_match is None:
            return None
        logger.debug(f"Fuzzy matched Hijri month {clean!r} -> {best_match!r} (distance {min_distance})")
        return self.spellings[best_match]

    @staticmethod
    def transliteration(month_number: Optional[int]) -> str:
        if month_number is None or month_number < 1 or month_number > 12:
            return "Unknown"
        return HIJRI_TRANSLITERATIONS[month_number]

    def transliterate(self, label: str) -> str:
        """Latin name of the month in label; the label itself when nothing matches.

        Header labels often carry the year ("رجب 1447"), so a label that does not
        match as a whole is matched by the longest known spelling it contains.
        """
        number = self.month_number(label)
        if number is None:
            contained = [s for s in self.spellings if s in (label or "")]
            if contained:
                number = self.spellings[max(contained, key=len)]
        if number is None:
            return label
        return self.transliteration(number)


def extract_solar_months(label: str) -> List[str]:
    """English names of the Gregorian months named in label, in the order they appear.

    "جمادى الآخرة نونبر / دجنبر" -> ["November", "December"]
    """
    if not label:
        return []
    positions: Dict[str, int] = {}
    for arabic, english in SOLAR_MONTH_SPELLINGS.items():
        index = label.find(arabic)
        if index < 0:
            continue
        if english not in positions or index < positions[english]:
            positions[english] = index
    return [english for english, _ in sorted(positions.items(), key=lambda item: item[1])]


def month_name_to_number(name: str) -> int:
    return MONTH_NUMBERS.get(name, 0)


def translate_weekday(arabic: str) -> str:
    if not arabic:
        return ''
    return WEEKDAYS.get(arabic.strip(), arabic)
