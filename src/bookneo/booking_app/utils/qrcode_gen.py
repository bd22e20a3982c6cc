# booking_app/utils/qrcode_gen.py
import base64
import json
from datetime import datetime, timezone
from io import BytesIO

import qrcode


def build_qr_payload(booking, hotel_name: str = "") -> str:
    """Check-in QR content: a small JSON document the front desk scanner reads."""
    return json.dumps({
        "type": "BOOK_NEO_BOOKING",
        "bookingId": booking.booking_id,
        "guest": booking.guest_name,
        "hotel": hotel_name,
        "checkIn": booking.check_in_date.isoformat(),
        "checkOut": booking.check_out_date.isoformat(),
        "amount": booking.total_amount,
        "generated": datetime.now(timezone.utc).isoformat(),
    })


def generate_qr_png(payload: str) -> bytes:
    img = qrcode.make(payload)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def generate_qr_base64(payload: str) -> str:
    return base64.b64encode(generate_qr_png(payload)).decode("utf-8")
