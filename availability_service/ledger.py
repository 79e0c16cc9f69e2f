"""
Read adapters for the booking ledger.

The service never writes to the ledger. Everything it needs is expressed by
:class:`LedgerSource`: three event queries over a position window, the current
log position, and listing reads. :class:`HttpLedgerGateway` implements it over
a small JSON gateway that fronts the ledger node.

Every transport or payload failure is raised as
:class:`~availability_service.errors.SourceUnavailableError`.
"""
import logging
from typing import Optional, Protocol

import httpx

from .errors import SourceUnavailableError
from .schemas import EventKind, ListingRecord, PayoutMode, parse_event

logger = logging.getLogger("availability_service.ledger")


class LedgerSource(Protocol):
    async def query_events(
        self, kind: EventKind, from_position: int, to_position: Optional[int] = None
    ) -> list: ...

    async def get_current_position(self) -> int: ...

    async def get_listing_count(self) -> int: ...

    async def get_listing_owner(self, listing_id: int) -> str: ...

    async def get_listing(self, listing_id: int) -> ListingRecord: ...

    async def aclose(self) -> None: ...


class HttpLedgerGateway:
    """
    LedgerSource backed by the ledger gateway's JSON API:

        GET /position                     -> {"position": int}
        GET /events/{kind}?from_position=&to_position=
                                          -> {"events": [{"position": int, "args": [...]}]}
        GET /listings/count               -> {"count": int}
        GET /listings/{id}                -> {"host", "price_per_night", "cancel_hours",
                                              "active", "payout_mode"}
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _get_json(self, operation: str, path: str, params: Optional[dict] = None) -> dict:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Ledger gateway request failed during {operation}: {e}")
            raise SourceUnavailableError(operation, str(e)) from e
        except ValueError as e:
            logger.error(f"Ledger gateway returned malformed JSON during {operation}: {e}")
            raise SourceUnavailableError(operation, "malformed JSON response") from e

    async def query_events(
        self, kind: EventKind, from_position: int, to_position: Optional[int] = None
    ) -> list:
        kind = EventKind(kind)
        operation = f"query_events({kind.value})"
        params = {"from_position": from_position}
        if to_position is not None:
            params["to_position"] = to_position

        payload = await self._get_json(operation, f"/events/{kind.value}", params=params)
        try:
            return [
                parse_event(kind, item["args"], item.get("position"))
                for item in payload["events"]
            ]
        except (LookupError, TypeError, ValueError) as e:
            raise SourceUnavailableError(operation, f"unexpected event payload: {e}") from e

    async def get_current_position(self) -> int:
        payload = await self._get_json("get_current_position", "/position")
        return self._read_int(payload, "position", "get_current_position")

    async def get_listing_count(self) -> int:
        payload = await self._get_json("get_listing_count", "/listings/count")
        return self._read_int(payload, "count", "get_listing_count")

    async def get_listing(self, listing_id: int) -> ListingRecord:
        operation = f"get_listing({listing_id})"
        payload = await self._get_json(operation, f"/listings/{listing_id}")
        try:
            return ListingRecord(
                listing_id=listing_id,
                host=payload["host"],
                price_per_night=payload["price_per_night"],
                cancel_hours=payload["cancel_hours"],
                active=payload["active"],
                payout_mode=PayoutMode.from_ordinal(payload["payout_mode"]),
            )
        except (LookupError, TypeError, ValueError) as e:
            raise SourceUnavailableError(operation, f"unexpected listing payload: {e}") from e

    async def get_listing_owner(self, listing_id: int) -> str:
        operation = f"get_listing_owner({listing_id})"
        payload = await self._get_json(operation, f"/listings/{listing_id}")
        host = payload.get("host") if isinstance(payload, dict) else None
        if not isinstance(host, str):
            raise SourceUnavailableError(operation, "listing payload has no host")
        return host

    async def aclose(self):
        await self._client.aclose()

    @staticmethod
    def _read_int(payload, key: str, operation: str) -> int:
        try:
            return int(payload[key])
        except (LookupError, TypeError, ValueError) as e:
            raise SourceUnavailableError(operation, f"missing or invalid '{key}'") from e
