"""Tests for the daily page parser."""

import unittest
from datetime import date

from prayer_sync.prayer.daily_parser import DailyHtmlParser, match_label

DAILY_HTML = """
<html><body>
<h2>مواقيت الصلاة لمدينة</h2>
<h2 class="ville">الدار البيضاء</h2>
<table class="horaire">
  <tr><td>الفجر</td><td>06:37</td><td>الشروق</td><td>08:03</td></tr>
  <tr><td>الظهر</td><td>13:25</td><td>العصر</td><td>16:30</td></tr>
  <tr><td>المغرب</td><td>18:45</td><td>العشاء</td><td>20:05</td></tr>
</table>
</body></html>
"""


class TestDailyHtmlParser(unittest.TestCase):
    def setUp(self):
        self.parser = DailyHtmlParser(today=lambda: date(2025, 11, 15))

    def test_parses_all_six_times(self):
        result = self.parser.parse(DAILY_HTML)
        self.assertTrue(result.is_complete)
        self.assertEqual(result.times["fajr"], "06:37")
        self.assertEqual(result.times["isha"], "20:05")
        self.assertEqual(result.date, "2025-11-15")

    def test_city_name_from_heading(self):
        result = self.parser.parse(DAILY_HTML)
        self.assertEqual(result.city_name, "الدار البيضاء")

    def test_given_city_name_wins(self):
        result = self.parser.parse(DAILY_HTML, city_name="Casablanca")
        self.assertEqual(result.city_name, "Casablanca")

    def test_missing_value_leaves_sentinel(self):
        html = DAILY_HTML.replace("<td>16:30</td>", "<td>--</td>")
        result = self.parser.parse(html)
        self.assertEqual(result.times["asr"], "N/A")
        self.assertFalse(result.is_complete)

    def test_no_table(self):
        result = self.parser.parse("<html></html>")
        self.assertFalse(result.is_complete)
        self.assertEqual(set(result.times.values()), {"N/A"})

    def test_to_dict(self):
        data = self.parser.parse(DAILY_HTML, city_name="Casablanca").to_dict()
        self.assertEqual(data["cityName"], "Casablanca")
        self.assertEqual(data["dhuhr"], "13:25")


class TestMatchLabel(unittest.TestCase):
    def test_native_and_english_labels(self):
        self.assertEqual(match_label("صلاة الفجر"), "fajr")
        self.assertEqual(match_label("Maghrib"), "maghrib")
        self.assertIsNone(match_label("Midnight"))


if __name__ == "__main__":
    unittest.main()
