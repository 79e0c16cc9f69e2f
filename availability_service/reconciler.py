"""
Rebuilds booking state from the ledger's Booked / Cancelled / Settled events.

The ledger is append-only and owned by a third party. Order across the three
event kinds is not guaranteed, so precedence is fixed structurally by three
passes over one map keyed by booking id:

1. Booked: create the record. Instant-payout bookings are Settled at creation
   and never pass through Booked; escrow bookings start as Booked.
2. Cancelled: an existing record becomes Cancelled, whatever its status.
3. Settled: an existing *escrow* record that is still Booked becomes Settled.
   Settled never overrides Cancelled, so cancellation anywhere in the window
   beats settlement.

Events for bookings whose Booked event lies outside the scanned window are
dropped. Callers that need completeness must pass a wider window.

The map is rebuilt on every call and only returned once all three event kinds
have been read and merged. A failed read fails the whole call.
"""
import logging
from collections import Counter
from typing import Dict, Optional

from .config import settings
from .epoch_days import check_in_timestamp
from .errors import SourceUnavailableError
from .schemas import (
    BookingRecord,
    BookingStatus,
    EventKind,
    PayoutMode,
    ScanWindow,
)

logger = logging.getLogger("availability_service.reconciler")


async def resolve_window(source, window: Optional[ScanWindow] = None) -> ScanWindow:
    """
    Fills in whatever the caller left out of the scan window.

    Start: the caller's from_position, else the configured deploy position,
    else the most recent DEFAULT_SCAN_WINDOW positions.
    End: the caller's to_position, else the current log position, read once so
    the three event queries all see the same range.
    """
    window = window or ScanWindow()
    from_position = window.from_position
    to_position = window.to_position
    current = None

    if from_position is None:
        if settings.DEPLOY_POSITION > 0:
            from_position = settings.DEPLOY_POSITION
        else:
            current = await source.get_current_position()
            from_position = max(0, current - settings.DEFAULT_SCAN_WINDOW)

    if to_position is None:
        if current is None:
            current = await source.get_current_position()
        to_position = max(current, from_position)
    elif from_position > to_position:
        # Defaulted start past an explicit end
        from_position = to_position

    return ScanWindow(from_position=from_position, to_position=to_position)


def apply_booked(rows: Dict[int, BookingRecord], events) -> None:
    for ev in events:
        if ev.end_day <= ev.start_day:
            # Kept as emitted; an empty range blocks no days.
            logger.warning(
                f"Booked({ev.booking_id}) has end_day {ev.end_day} <= start_day {ev.start_day}"
            )
        status = BookingStatus.SETTLED if ev.payout_mode == PayoutMode.INSTANT else BookingStatus.BOOKED
        rows[ev.booking_id] = BookingRecord(
            booking_id=ev.booking_id,
            listing_id=ev.listing_id,
            guest=ev.guest.lower(),
            start_day=ev.start_day,
            end_day=ev.end_day,
            total_paid=ev.total_paid,
            payout_mode=ev.payout_mode,
            status=status,
            check_in_timestamp=check_in_timestamp(ev.start_day, settings.CHECKIN_HOUR_UTC),
        )


def apply_cancelled(rows: Dict[int, BookingRecord], events) -> None:
    for ev in events:
        row = rows.get(ev.booking_id)
        if row is None:
            logger.debug(f"Dropping Cancelled({ev.booking_id}): booking not in scan window")
            continue
        row.status = BookingStatus.CANCELLED


def apply_settled(rows: Dict[int, BookingRecord], events) -> None:
    for ev in events:
        row = rows.get(ev.booking_id)
        if row is None:
            logger.debug(f"Dropping Settled({ev.booking_id}): booking not in scan window")
            continue
        # Instant bookings are already settled; Cancelled is terminal.
        if row.payout_mode == PayoutMode.ESCROW and row.status == BookingStatus.BOOKED:
            row.status = BookingStatus.SETTLED


async def reconcile_bookings(source, window: Optional[ScanWindow] = None) -> Dict[int, BookingRecord]:
    """
    Returns booking_id -> BookingRecord for every booking whose Booked event
    lies inside the scan window.

    Raises SourceUnavailableError if any of the reads fails; nothing partial
    is ever returned.
    """
    try:
        window = await resolve_window(source, window)
        start, end = window.from_position, window.to_position
        booked = await source.query_events(EventKind.BOOKED, start, end)
        cancelled = await source.query_events(EventKind.CANCELLED, start, end)
        settled = await source.query_events(EventKind.SETTLED, start, end)
    except SourceUnavailableError as e:
        logger.error(f"Reconciliation aborted: {e}")
        raise

    rows: Dict[int, BookingRecord] = {}
    apply_booked(rows, booked)
    apply_cancelled(rows, cancelled)
    apply_settled(rows, settled)

    counts = Counter(row.status.value for row in rows.values())
    logger.info(
        f"Reconciled {len(rows)} bookings from positions {start}..{end} "
        f"(booked={counts['Booked']}, cancelled={counts['Cancelled']}, settled={counts['Settled']})"
    )
    return rows
