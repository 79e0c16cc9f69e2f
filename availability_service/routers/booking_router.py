from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from .. import ownership, reconciler, schemas
from ..dependencies import get_ledger, read_limiter
from ..errors import SourceUnavailableError

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def source_unavailable(e: SourceUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Ledger unavailable ({e.operation}). Please retry.",
    )


def get_scan_window(
        from_position: Optional[int] = Query(default=None, ge=0),
        to_position: Optional[int] = Query(default=None, ge=0),
) -> schemas.ScanWindow:
    """
    Optional explicit scan window. Without `from_position` only the configured
    recent range is scanned: bookings created before it are not listed.
    """
    try:
        return schemas.ScanWindow(from_position=from_position, to_position=to_position)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from_position must not be greater than to_position."
        )


@router.get("/", response_model=List[schemas.BookingRead])
async def read_all_bookings(
        window: schemas.ScanWindow = Depends(get_scan_window),
        ledger=Depends(get_ledger),
        limit: None = Depends(read_limiter),
):
    """
    Reconciled state of every booking whose Booked event is in the scan window.
    """
    try:
        rows = await reconciler.reconcile_bookings(ledger, window)
    except SourceUnavailableError as e:
        raise source_unavailable(e)
    return [schemas.BookingRead.from_record(rows[booking_id]) for booking_id in sorted(rows)]


@router.get("/host/{address}", response_model=List[schemas.BookingRead])
async def read_host_bookings(
        address: str,
        window: schemas.ScanWindow = Depends(get_scan_window),
        ledger=Depends(get_ledger),
        limit: None = Depends(read_limiter),
):
    """
    Bookings on listings owned by `address`, ordered by check-in day.
    """
    try:
        rows = await ownership.list_host_bookings(ledger, address, window)
    except SourceUnavailableError as e:
        raise source_unavailable(e)
    return [schemas.BookingRead.from_record(row) for row in rows]


@router.get("/guest/{address}", response_model=List[schemas.BookingRead])
async def read_guest_bookings(
        address: str,
        window: schemas.ScanWindow = Depends(get_scan_window),
        ledger=Depends(get_ledger),
        limit: None = Depends(read_limiter),
):
    """
    Bookings made by `address`, ordered by check-in day.
    """
    try:
        rows = await ownership.list_guest_bookings(ledger, address, window)
    except SourceUnavailableError as e:
        raise source_unavailable(e)
    return [schemas.BookingRead.from_record(row) for row in rows]
