# Imports for testing tools
import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

# Import your application code
from availability_service.dependencies import read_limiter
from availability_service.errors import SourceUnavailableError
from availability_service.main import app
from availability_service.schemas import (
    BookedEvent,
    CancelledEvent,
    EventKind,
    ListingRecord,
    PayoutMode,
    SettledEvent,
)


# --- In-memory ledger ---
class FakeLedger:
    """
    LedgerSource stand-in. Events are appended with increasing positions;
    `fail_on` names operations that raise SourceUnavailableError.
    """

    def __init__(self, current_position: int = 1000):
        self.current_position = current_position
        self.events = {kind: [] for kind in EventKind}
        self.listings = {}
        self.fail_on = set()
        self.calls = []
        self._next_position = 1

    def _position(self, position):
        if position is None:
            position = self._next_position
        self._next_position = position + 1
        return position

    def booked(self, booking_id, listing_id, guest, start_day, end_day, total_paid=0,
               mode=PayoutMode.ESCROW, position=None):
        self.events[EventKind.BOOKED].append(BookedEvent(
            booking_id=booking_id, listing_id=listing_id, guest=guest,
            start_day=start_day, end_day=end_day, total_paid=total_paid,
            payout_mode=mode, position=self._position(position),
        ))

    def cancelled(self, booking_id, position=None):
        self.events[EventKind.CANCELLED].append(
            CancelledEvent(booking_id=booking_id, position=self._position(position)))

    def settled(self, booking_id, position=None):
        self.events[EventKind.SETTLED].append(
            SettledEvent(booking_id=booking_id, position=self._position(position)))

    def add_listing(self, listing_id, host, price_per_night=100_000_000, cancel_hours=24,
                    active=True, mode=PayoutMode.ESCROW):
        self.listings[listing_id] = ListingRecord(
            listing_id=listing_id, host=host, price_per_night=price_per_night,
            cancel_hours=cancel_hours, active=active, payout_mode=mode,
        )

    def _check(self, operation):
        self.calls.append(operation)
        if operation in self.fail_on:
            raise SourceUnavailableError(operation, "simulated outage")

    async def query_events(self, kind, from_position, to_position=None):
        kind = EventKind(kind)
        self._check(f"query_events({kind.value})")
        upper = self.current_position if to_position is None else to_position
        return [ev for ev in self.events[kind] if from_position <= ev.position <= upper]

    async def get_current_position(self):
        self._check("get_current_position")
        return self.current_position

    async def get_listing_count(self):
        self._check("get_listing_count")
        return max(self.listings, default=0)

    async def get_listing_owner(self, listing_id):
        self._check(f"get_listing_owner({listing_id})")
        return self.listings[listing_id].host

    async def get_listing(self, listing_id):
        self._check(f"get_listing({listing_id})")
        return self.listings[listing_id]

    async def aclose(self):
        pass


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture(autouse=True)
def scan_defaults(mocker):
    """Pins the scan-window settings so a local .env cannot change test results."""
    mocker.patch("availability_service.reconciler.settings.DEPLOY_POSITION", 0)
    mocker.patch("availability_service.reconciler.settings.DEFAULT_SCAN_WINDOW", 500_000)
    mocker.patch("availability_service.reconciler.settings.CHECKIN_HOUR_UTC", 15)


# --- Mocking External Services ---
@pytest.fixture(scope="function")
def mock_startup(mocker, ledger):
    """
    Mocks what the lifespan would connect to: Redis / the rate limiter and
    the ledger source.
    """
    mocker.patch("availability_service.main.redis.from_url", return_value=AsyncMock())
    mocker.patch("availability_service.main.FastAPILimiter.init", new_callable=AsyncMock)
    mocker.patch("availability_service.main.build_ledger", return_value=ledger)


# --- API Test Client Fixture ---
@pytest.fixture(scope="function")
def client(mock_startup):
    """Provides a TestClient backed by the fake ledger."""
    app.dependency_overrides[read_limiter] = lambda: None

    with TestClient(app) as c:
        yield c

    # Clean up overrides
    app.dependency_overrides.clear()
