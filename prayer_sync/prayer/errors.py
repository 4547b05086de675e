"""
Failure kinds raised inside prayer time sources. The resolver catches all of
them and moves on to the next source.
"""


class PrayerSourceError(Exception):
    """Base class: this source could not produce usable times."""


class NetworkFailure(PrayerSourceError):
    """Timeout, non-2xx status or transport error."""


class ParseFailure(PrayerSourceError):
    """Missing table/row/cell or an unparseable payload."""


class ValidationFailure(PrayerSourceError):
    """A time did not match HH:MM."""


class EmptyResult(PrayerSourceError):
    """The source answered but gave nothing usable (e.g. all sentinels)."""


class TotalFailure(PrayerSourceError):
    """Every configured source failed."""
