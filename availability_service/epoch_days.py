"""
Calendar arithmetic on UTC "epoch days".

An epoch day is the number of whole days since 1970-01-01 (UTC). Every other
part of the service uses it as the common time unit: booking ranges are
half-open [start_day, end_day) intervals of epoch days.
"""
import calendar
import datetime
import re

from .errors import MalformedDateError

SECONDS_PER_DAY = 86_400

_EPOCH_ORDINAL = datetime.date(1970, 1, 1).toordinal()
_ISO_DATE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")


def to_epoch_day(iso_date: str) -> int:
    """
    Converts 'YYYY-MM-DD' (assumed UTC midnight) to an epoch day.

    The day component is checked against 1..31 only. A day past the end of
    its month rolls over into the next month, so "2025-02-30" is the same
    epoch day as "2025-03-02".
    """
    if not isinstance(iso_date, str):
        raise MalformedDateError(iso_date)
    match = _ISO_DATE.fullmatch(iso_date)
    if match is None:
        raise MalformedDateError(iso_date)

    year, month, day = (int(part) for part in match.groups())
    if not 1 <= month <= 12:
        raise MalformedDateError(iso_date, "month must be between 01 and 12")
    if not 1 <= day <= 31:
        raise MalformedDateError(iso_date, "day must be between 01 and 31")
    if year < datetime.MINYEAR:
        raise MalformedDateError(iso_date, "year must be 0001 or later")

    # Overflowing days are added onto the first of the month (rollover).
    first_of_month = datetime.date(year, month, 1).toordinal()
    return first_of_month + (day - 1) - _EPOCH_ORDINAL


def epoch_day_to_iso(day: int) -> str:
    """Converts an epoch day back to a zero-padded 'YYYY-MM-DD' string."""
    try:
        return datetime.date.fromordinal(_EPOCH_ORDINAL + day).isoformat()
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Epoch day {day} is outside the representable date range") from exc


def _check_month(year: int, month: int):
    if not 1 <= month <= 12:
        raise MalformedDateError(f"{year:04d}-{month:02d}", "month must be between 1 and 12")
    if not datetime.MINYEAR <= year <= datetime.MAXYEAR:
        raise MalformedDateError(f"{year}-{month:02d}", "year is out of range")


def days_in_month(year: int, month: int) -> int:
    _check_month(year, month)
    return calendar.monthrange(year, month)[1]


def first_day_of_month(year: int, month: int) -> int:
    """Epoch day of the first calendar day of the given month."""
    _check_month(year, month)
    return datetime.date(year, month, 1).toordinal() - _EPOCH_ORDINAL


def check_in_timestamp(start_day: int, check_in_hour: int) -> int:
    """Unix timestamp (seconds) of check-in: start_day at check_in_hour UTC."""
    return start_day * SECONDS_PER_DAY + check_in_hour * 3600
