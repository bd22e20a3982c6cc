from datetime import date, datetime

import pytest

from bookneo.booking_app.errors import BookingValidationError
from bookneo.booking_app.pricing import calculate_total, nightly_price, nights_between


@pytest.mark.parametrize("room_type, expected", [
    ("suite", 3000),
    ("ac", 2500),
    ("deluxe", 2000),
    ("non-ac", 2000),
])
def test_nightly_price_surcharges(room_type, expected):
    assert nightly_price(room_type, 2000) == expected


@pytest.mark.parametrize("room_type", ["suite", "deluxe", "ac", "non-ac"])
@pytest.mark.parametrize("nights", [1, 2, 7])
def test_total_is_nightly_price_times_nights(room_type, nights):
    check_in = date(2025, 3, 1)
    check_out = date(2025, 3, 1 + nights)
    total, counted = calculate_total(room_type, 1800, check_in, check_out)
    assert counted == nights
    assert total == nightly_price(room_type, 1800) * nights


def test_end_to_end_example_amount():
    total, nights = calculate_total("ac", 2000, date(2025, 1, 1), date(2025, 1, 3))
    assert (total, nights) == (5000, 2)


def test_partial_days_round_up():
    assert nights_between(datetime(2025, 1, 1, 14, 0), datetime(2025, 1, 2, 11, 0)) == 1
    assert nights_between(datetime(2025, 1, 1, 10, 0), datetime(2025, 1, 2, 14, 0)) == 2


def test_accepts_iso_strings():
    assert nights_between("2025-01-01", "2025-01-04") == 3


@pytest.mark.parametrize("check_in, check_out", [
    (date(2025, 1, 3), date(2025, 1, 3)),
    (date(2025, 1, 3), date(2025, 1, 1)),
])
def test_non_positive_nights_rejected(check_in, check_out):
    with pytest.raises(BookingValidationError) as exc:
        calculate_total("deluxe", 2000, check_in, check_out)
    assert "checkOutDate" in exc.value.errors


def test_unknown_room_type_rejected():
    with pytest.raises(BookingValidationError) as exc:
        nightly_price("penthouse", 2000)
    assert "roomType" in exc.value.errors
