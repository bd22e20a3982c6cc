# booking_app/pricing.py
from datetime import date, datetime
from math import ceil

from .errors import BookingValidationError
from .models import RoomType

SECONDS_PER_DAY = 24 * 60 * 60

# flat per-night surcharge on top of the hotel's base rate
ROOM_SURCHARGES = {
    RoomType.suite.value: 1000,
    RoomType.deluxe.value: 0,
    RoomType.ac.value: 500,
    RoomType.non_ac.value: 0,
}


def _as_datetime(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def nights_between(check_in, check_out) -> int:
    """Whole nights between two dates, partial days rounded up. May be zero or negative."""
    delta = _as_datetime(check_out) - _as_datetime(check_in)
    return ceil(delta.total_seconds() / SECONDS_PER_DAY)


def nightly_price(room_type: str, base_rate: int) -> int:
    try:
        surcharge = ROOM_SURCHARGES[room_type]
    except KeyError:
        raise BookingValidationError.for_field("roomType", f"Unknown room type: {room_type!r}")
    return int(base_rate) + surcharge


def calculate_total(room_type: str, base_rate: int, check_in, check_out):
    """Return (total_amount, nights). Rejects stays that are not at least one night."""
    nights = nights_between(check_in, check_out)
    if nights <= 0:
        raise BookingValidationError.for_field("checkOutDate", "check-out must be after check-in")
    return nightly_price(room_type, base_rate) * nights, nights
