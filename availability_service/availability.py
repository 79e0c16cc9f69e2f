"""
Per-listing availability derived from reconciled bookings.

A booking occupies the half-open range [start_day, end_day): the checkout day
is free for the next guest. Cancelled bookings never block; payout mode has no
effect on availability.
"""
from typing import Dict, Iterable, Optional, Set

from .epoch_days import days_in_month, first_day_of_month, to_epoch_day
from .reconciler import reconcile_bookings
from .schemas import BookingRecord, BookingStatus, ScanWindow


def _active_for_listing(records: Iterable[BookingRecord], listing_id: int):
    for record in records:
        if record.listing_id != listing_id:
            continue
        if record.status == BookingStatus.CANCELLED:
            continue
        yield record


def blocked_days_from_records(
    records: Iterable[BookingRecord], listing_id: int, year: int, month: int
) -> Set[int]:
    """Day-of-month numbers (1-based) of `year`/`month` that are taken for `listing_id`."""
    first_day = first_day_of_month(year, month)
    end_of_month = first_day + days_in_month(year, month)

    blocked = set()
    for record in _active_for_listing(records, listing_id):
        start = max(record.start_day, first_day)
        end = min(record.end_day, end_of_month)
        for day in range(start, end):
            blocked.add(day - first_day + 1)
    return blocked


async def compute_blocked_days(
    source, listing_id: int, year: int, month: int, window: Optional[ScanWindow] = None
) -> Set[int]:
    # Validate the month before paying for a scan
    first_day_of_month(year, month)
    rows: Dict[int, BookingRecord] = await reconcile_bookings(source, window)
    return blocked_days_from_records(rows.values(), listing_id, year, month)


def is_range_available(
    records: Iterable[BookingRecord], listing_id: int, start_iso: str, end_iso: str
) -> bool:
    """
    True if [start, end) can be booked for `listing_id`.

    An empty or inverted range is never available.
    """
    start = to_epoch_day(start_iso)
    end = to_epoch_day(end_iso)
    if end <= start:
        return False

    for record in _active_for_listing(records, listing_id):
        # (Existing Start < New End) AND (Existing End > New Start)
        if record.start_day < end and record.end_day > start:
            return False
    return True
