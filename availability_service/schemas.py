from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .config import settings
from .epoch_days import epoch_day_to_iso


class PayoutMode(str, Enum):
    ESCROW = "Escrow"
    INSTANT = "Instant"

    @classmethod
    def from_ordinal(cls, value) -> "PayoutMode":
        # Contract enum: 0 = Escrow, anything else = Instant
        return cls.ESCROW if int(value) == 0 else cls.INSTANT


class BookingStatus(str, Enum):
    BOOKED = "Booked"
    CANCELLED = "Cancelled"
    SETTLED = "Settled"


class EventKind(str, Enum):
    BOOKED = "Booked"
    CANCELLED = "Cancelled"
    SETTLED = "Settled"


# --- Ledger events (positional args as emitted by the contract) ---

class BookedEvent(BaseModel):
    booking_id: int
    listing_id: int
    guest: str
    start_day: int
    end_day: int
    total_paid: int
    payout_mode: PayoutMode
    position: Optional[int] = None

    @classmethod
    def from_args(cls, args: list, position: Optional[int] = None) -> "BookedEvent":
        booking_id, listing_id, guest, start_day, end_day, total_paid, payout_mode = args[:7]
        return cls(
            booking_id=booking_id,
            listing_id=listing_id,
            guest=guest,
            start_day=start_day,
            end_day=end_day,
            total_paid=total_paid,
            payout_mode=PayoutMode.from_ordinal(payout_mode),
            position=position,
        )


class CancelledEvent(BaseModel):
    booking_id: int
    position: Optional[int] = None

    @classmethod
    def from_args(cls, args: list, position: Optional[int] = None) -> "CancelledEvent":
        return cls(booking_id=args[0], position=position)


class SettledEvent(BaseModel):
    booking_id: int
    position: Optional[int] = None

    @classmethod
    def from_args(cls, args: list, position: Optional[int] = None) -> "SettledEvent":
        return cls(booking_id=args[0], position=position)


EVENT_TYPES = {
    EventKind.BOOKED: BookedEvent,
    EventKind.CANCELLED: CancelledEvent,
    EventKind.SETTLED: SettledEvent,
}


def parse_event(kind: EventKind, args: list, position: Optional[int] = None):
    return EVENT_TYPES[kind].from_args(args, position)


# --- Scan window ---

class ScanWindow(BaseModel):
    """Inclusive [from_position, to_position] range of the event log. None means 'not given'."""
    from_position: Optional[int] = Field(default=None, ge=0)
    to_position: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_order(self):
        if (
            self.from_position is not None
            and self.to_position is not None
            and self.from_position > self.to_position
        ):
            raise ValueError("from_position must not be greater than to_position")
        return self


# --- Reconciled state ---

class BookingRecord(BaseModel):
    booking_id: int
    listing_id: int
    guest: str
    start_day: int  # inclusive
    end_day: int  # exclusive
    total_paid: int  # base units of the payment token
    payout_mode: PayoutMode
    status: BookingStatus
    check_in_timestamp: int  # seconds

    @property
    def nights(self) -> int:
        return self.end_day - self.start_day


class ListingRecord(BaseModel):
    listing_id: int
    host: str
    price_per_night: int
    cancel_hours: int
    active: bool
    payout_mode: PayoutMode


def format_amount(amount: int, decimals: Optional[int] = None, symbol: Optional[str] = None) -> str:
    """Renders base units as e.g. '300 USDC' (6 decimals: 300_000_000 -> '300')."""
    decimals = settings.PAYMENT_TOKEN_DECIMALS if decimals is None else decimals
    symbol = settings.PAYMENT_TOKEN_SYMBOL if symbol is None else symbol
    value = Decimal(amount).scaleb(-decimals)
    text = format(value.normalize(), "f") if value else "0"
    return f"{text} {symbol}"


# --- API responses ---

class BookingRead(BaseModel):
    booking_id: int
    listing_id: int
    guest: str
    start_day: int
    end_day: int
    start_date: str
    end_date: str
    nights: int
    total_paid: int
    total_paid_display: str
    payout_mode: PayoutMode
    status: BookingStatus
    check_in_timestamp: int

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingRead":
        return cls(
            **record.model_dump(),
            start_date=epoch_day_to_iso(record.start_day),
            end_date=epoch_day_to_iso(record.end_day),
            nights=record.nights,
            total_paid_display=format_amount(record.total_paid),
        )


class ListingRead(BaseModel):
    listing_id: int
    host: str
    price_per_night: int
    price_per_night_display: str
    cancel_hours: int
    active: bool
    payout_mode: PayoutMode

    @classmethod
    def from_record(cls, record: ListingRecord) -> "ListingRead":
        return cls(
            **record.model_dump(),
            price_per_night_display=format_amount(record.price_per_night),
        )


class BlockedDaysRead(BaseModel):
    listing_id: int
    year: int
    month: int
    blocked_days: List[int]


class RangeAvailabilityRead(BaseModel):
    listing_id: int
    start: str
    end: str
    available: bool
