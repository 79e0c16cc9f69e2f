import datetime

import pytest

from availability_service.epoch_days import (
    check_in_timestamp,
    days_in_month,
    epoch_day_to_iso,
    first_day_of_month,
    to_epoch_day,
)
from availability_service.errors import MalformedDateError


def test_epoch_origin():
    """1970-01-01 is day 0 and day 0 renders back to it."""
    assert to_epoch_day("1970-01-01") == 0
    assert epoch_day_to_iso(0) == "1970-01-01"


def test_matches_utc_midnight_milliseconds():
    """Epoch day is floor(UTC midnight ms / 86_400_000)."""
    midnight = datetime.datetime(2025, 6, 15, tzinfo=datetime.timezone.utc)
    ms = int(midnight.timestamp() * 1000)
    assert to_epoch_day("2025-06-15") == ms // 86_400_000 == 20254


def test_dates_before_epoch_are_negative():
    assert to_epoch_day("1969-12-31") == -1
    assert epoch_day_to_iso(-1) == "1969-12-31"


@pytest.mark.parametrize("iso", ["2024-02-29", "2025-01-01", "2025-12-31", "2000-03-01", "0001-01-01", "9999-12-31"])
def test_round_trip(iso):
    """epoch_day_to_iso(to_epoch_day(d)) == d for valid dates."""
    assert epoch_day_to_iso(to_epoch_day(iso)) == iso


def test_round_trip_over_a_leap_year_span():
    start = to_epoch_day("2023-12-25")
    for day in range(start, start + 800):
        assert to_epoch_day(epoch_day_to_iso(day)) == day


def test_day_overflow_rolls_into_next_month():
    """2025-02-30 is normalised to 2025-03-02, not rejected."""
    assert to_epoch_day("2025-02-30") == to_epoch_day("2025-03-02")
    assert epoch_day_to_iso(to_epoch_day("2025-02-30")) == "2025-03-02"


def test_day_31_in_30_day_month_rolls_over():
    assert epoch_day_to_iso(to_epoch_day("2025-04-31")) == "2025-05-01"
    assert epoch_day_to_iso(to_epoch_day("2025-12-31")) == "2025-12-31"


@pytest.mark.parametrize("bad", [
    "2025-13-01",
    "2025-00-10",
    "2025-01-00",
    "2025-01-32",
    "2025-1-01",
    "25-01-01",
    "2025/01/01",
    "2025-01-01T00:00:00",
    "2025-01-01\n",
    "",
    "0000-01-01",
])
def test_malformed_dates_rejected(bad):
    with pytest.raises(MalformedDateError) as exc_info:
        to_epoch_day(bad)
    assert exc_info.value.value == bad


def test_non_string_rejected():
    with pytest.raises(MalformedDateError):
        to_epoch_day(20250101)


def test_malformed_date_message_is_corrective():
    with pytest.raises(MalformedDateError, match="YYYY-MM-DD"):
        to_epoch_day("tomorrow")


def test_iso_output_is_zero_padded():
    assert epoch_day_to_iso(to_epoch_day("0099-03-04")) == "0099-03-04"


def test_unrepresentable_epoch_day():
    with pytest.raises(ValueError):
        epoch_day_to_iso(10 ** 9)


def test_month_helpers():
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2025, 2) == 28
    assert days_in_month(2025, 4) == 30
    assert first_day_of_month(2025, 3) == to_epoch_day("2025-03-01")


@pytest.mark.parametrize("month", [0, 13])
def test_month_helpers_reject_bad_month(month):
    with pytest.raises(MalformedDateError):
        days_in_month(2025, month)
    with pytest.raises(MalformedDateError):
        first_day_of_month(2025, month)


def test_check_in_timestamp():
    day = to_epoch_day("2025-06-15")
    expected = datetime.datetime(2025, 6, 15, 15, tzinfo=datetime.timezone.utc).timestamp()
    assert check_in_timestamp(day, 15) == int(expected)
