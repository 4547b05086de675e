"""
Text helpers shared by the parsers and backends: markup sanitizing and
clock-time normalization.
"""
import re
from typing import Optional

SENTINEL = "N/A"

# Canonical order; keys of every six-time map
PRAYER_KEYS = ("fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha")

TIME_PATTERN = re.compile(r"^[0-2]\d:[0-5]\d$")

_TAG_RE = re.compile(r"<[^>]+>")
_JS_RE = re.compile(r"javascript:", re.IGNORECASE)
_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")
_NON_TIME_RE = re.compile(r"[^0-9:]")
_WHITESPACE_RE = re.compile(r"\s+")

_ENTITIES = (
    ("&nbsp;", " "),
    ("&nbsp", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
)


def sanitize_html_content(content: Optional[str]) -> str:
    """Strip tags, decode the common entities, drop script-like patterns and control characters."""
    if not content:
        return ""
    sanitized = _TAG_RE.sub("", content)
    for entity, replacement in _ENTITIES:
        sanitized = sanitized.replace(entity, replacement)
    sanitized = sanitized.replace("\xa0", " ")
    sanitized = _JS_RE.sub("", sanitized)
    sanitized = _HANDLER_RE.sub("", sanitized)
    sanitized = _CONTROL_RE.sub("", sanitized)
    return sanitized.strip()


def normalize_time(value: Optional[str]) -> str:
    """Return an HH:MM string, or the sentinel if the cleaned value is not a valid clock time.

    >>> normalize_time(" 0 6 : 3 7 ")
    '06:37'
    >>> normalize_time("25:99")
    'N/A'
    """
    cleaned = _WHITESPACE_RE.sub("", sanitize_html_content(value))
    cleaned = _NON_TIME_RE.sub("", cleaned)
    if TIME_PATTERN.match(cleaned):
        return cleaned
    return SENTINEL


def strip_timezone_suffix(value: Optional[str]) -> str:
    """Cut an API time such as "07:00 +01" at the first space. Empty input gives "00:00"."""
    if not value:
        return "00:00"
    value = value.strip()
    if " " in value:
        return value.split(" ", 1)[0].strip()
    return value


def is_valid_time(value: Optional[str]) -> bool:
    return bool(value) and value != SENTINEL and bool(TIME_PATTERN.match(value))


def sentinel_times() -> dict:
    return {key: SENTINEL for key in PRAYER_KEYS}


def digits_only(value: str) -> Optional[int]:
    """Parse the digits of value as an int; None when there are none."""
    digits = re.sub(r"[^0-9]", "", value or "")
    return int(digits) if digits else None
