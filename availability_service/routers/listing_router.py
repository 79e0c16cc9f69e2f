from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import availability, ownership, reconciler, schemas
from ..dependencies import get_ledger, read_limiter
from ..epoch_days import to_epoch_day
from ..errors import MalformedDateError, SourceUnavailableError
from .booking_router import get_scan_window, source_unavailable

router = APIRouter(prefix="/listings", tags=["Listings"])


@router.get("/", response_model=List[schemas.ListingRead])
async def read_listings(
        ledger=Depends(get_ledger),
        limit: None = Depends(read_limiter),
):
    try:
        listings = await ownership.list_listings(ledger)
    except SourceUnavailableError as e:
        raise source_unavailable(e)
    return [schemas.ListingRead.from_record(listing) for listing in listings]


@router.get("/{listing_id}/blocked-days", response_model=schemas.BlockedDaysRead)
async def read_blocked_days(
        listing_id: int,
        year: int = Query(ge=1, le=9999),
        month: int = Query(ge=1, le=12),
        window: schemas.ScanWindow = Depends(get_scan_window),
        ledger=Depends(get_ledger),
        limit: None = Depends(read_limiter),
):
    """
    Days of `year`/`month` that cannot be booked for this listing.
    """
    try:
        blocked = await availability.compute_blocked_days(ledger, listing_id, year, month, window)
    except SourceUnavailableError as e:
        raise source_unavailable(e)
    except MalformedDateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return schemas.BlockedDaysRead(
        listing_id=listing_id, year=year, month=month, blocked_days=sorted(blocked)
    )


@router.get("/{listing_id}/availability", response_model=schemas.RangeAvailabilityRead)
async def read_range_availability(
        listing_id: int,
        start: str,
        end: str,
        window: schemas.ScanWindow = Depends(get_scan_window),
        ledger=Depends(get_ledger),
        limit: None = Depends(read_limiter),
):
    """
    Whether a stay from `start` (check-in) to `end` (checkout) is free.
    """
    try:
        # Reject bad input before scanning the ledger
        to_epoch_day(start)
        to_epoch_day(end)
        rows = await reconciler.reconcile_bookings(ledger, window)
        available = availability.is_range_available(rows.values(), listing_id, start, end)
    except MalformedDateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SourceUnavailableError as e:
        raise source_unavailable(e)
    return schemas.RangeAvailabilityRead(
        listing_id=listing_id, start=start, end=end, available=available
    )
