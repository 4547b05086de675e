"""Tests for the text helpers."""

import unittest

from prayer_sync.prayer.text import (
    SENTINEL,
    digits_only,
    is_valid_time,
    normalize_time,
    sanitize_html_content,
    sentinel_times,
    strip_timezone_suffix,
)


class TestNormalizeTime(unittest.TestCase):
    def test_collapses_inner_whitespace(self):
        self.assertEqual(normalize_time(" 0 6 : 3 7 "), "06:37")

    def test_out_of_range_is_sentinel(self):
        self.assertEqual(normalize_time("25:99"), SENTINEL)

    def test_markup_and_entities_are_removed(self):
        self.assertEqual(normalize_time("<b>13:&nbsp;05</b>"), "13:05")

    def test_empty_is_sentinel(self):
        self.assertEqual(normalize_time(""), SENTINEL)
        self.assertEqual(normalize_time(None), SENTINEL)

    def test_single_digit_hour_is_rejected(self):
        self.assertEqual(normalize_time("6:37"), SENTINEL)


class TestStripTimezoneSuffix(unittest.TestCase):
    def test_cut_at_first_space(self):
        self.assertEqual(strip_timezone_suffix("05:12 (+01)"), "05:12")
        self.assertEqual(strip_timezone_suffix("05:12 +01 extra"), "05:12")

    def test_no_space_passes_through(self):
        self.assertEqual(strip_timezone_suffix("05:12"), "05:12")

    def test_empty_gives_midnight(self):
        self.assertEqual(strip_timezone_suffix(""), "00:00")
        self.assertEqual(strip_timezone_suffix(None), "00:00")


class TestSanitize(unittest.TestCase):
    def test_strips_tags_and_handlers(self):
        self.assertEqual(sanitize_html_content('<a onclick=x>javascript:hi</a>'), "hi")

    def test_decodes_entities(self):
        self.assertEqual(sanitize_html_content("a &amp; b &lt;c&gt;"), "a & b <c>")

    def test_removes_control_characters(self):
        self.assertEqual(sanitize_html_content("ab\x01c\x1f"), "abc")


class TestSmallHelpers(unittest.TestCase):
    def test_is_valid_time(self):
        self.assertTrue(is_valid_time("04:30"))
        self.assertFalse(is_valid_time(SENTINEL))
        self.assertFalse(is_valid_time(""))

    def test_sentinel_times_has_six_keys(self):
        times = sentinel_times()
        self.assertEqual(list(times), ["fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha"])
        self.assertTrue(all(v == SENTINEL for v in times.values()))

    def test_digits_only(self):
        self.assertEqual(digits_only(" 12 "), 12)
        self.assertIsNone(digits_only("☽"))


if __name__ == "__main__":
    unittest.main()
