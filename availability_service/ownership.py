import logging
from typing import Dict, Iterable, List, Mapping, Optional

from .reconciler import reconcile_bookings
from .schemas import BookingRecord, ListingRecord, ScanWindow

logger = logging.getLogger("availability_service.ownership")


def _same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def filter_by_host(
    records: Iterable[BookingRecord], host_address: str, listing_ownership: Mapping[int, str]
) -> List[BookingRecord]:
    """
    Bookings on listings owned by `host_address`, earliest stay first.

    `listing_ownership` maps listing_id -> owner address. Listings missing from
    it are treated as not owned by anyone.
    """
    owned = {
        listing_id
        for listing_id, owner in listing_ownership.items()
        if owner and _same_address(owner, host_address)
    }
    rows = [record for record in records if record.listing_id in owned]
    rows.sort(key=lambda r: r.start_day)
    return rows


def filter_by_guest(records: Iterable[BookingRecord], guest_address: str) -> List[BookingRecord]:
    """Bookings made by `guest_address` (case-insensitive), earliest stay first."""
    rows = [record for record in records if _same_address(record.guest, guest_address)]
    rows.sort(key=lambda r: r.start_day)
    return rows


async def read_listing_ownership(source) -> Dict[int, str]:
    """One owner read per listing id 1..get_listing_count()."""
    count = await source.get_listing_count()
    ownership = {}
    for listing_id in range(1, count + 1):
        ownership[listing_id] = await source.get_listing_owner(listing_id)
    return ownership


async def list_listings(source) -> List[ListingRecord]:
    count = await source.get_listing_count()
    return [await source.get_listing(listing_id) for listing_id in range(1, count + 1)]


async def list_host_bookings(
    source, host_address: str, window: Optional[ScanWindow] = None
) -> List[BookingRecord]:
    rows = await reconcile_bookings(source, window)
    ownership = await read_listing_ownership(source)
    result = filter_by_host(rows.values(), host_address, ownership)
    logger.info(f"Host {host_address} has {len(result)} bookings across {len(ownership)} listings checked.")
    return result


async def list_guest_bookings(
    source, guest_address: str, window: Optional[ScanWindow] = None
) -> List[BookingRecord]:
    rows = await reconcile_bookings(source, window)
    return filter_by_guest(rows.values(), guest_address)
