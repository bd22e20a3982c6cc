# booking_app/services/notify.py
import html
import logging
from typing import Any, Dict, Optional

import requests

from ...config import Config
from ..errors import NotificationError
from ..utils.qrcode_gen import build_qr_payload, generate_qr_base64

logger = logging.getLogger(__name__)


def _fmt_date(d) -> str:
    return d.strftime("%d %b %Y")


def _fmt_amount(amount: int) -> str:
    return f"₹{amount:,}"


PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; background-color: #f8fafc; margin: 0; padding: 20px; }}
    .container {{ max-width: 600px; margin: 0 auto; background: white; border-radius: 12px; overflow: hidden; }}
    .header {{ background: linear-gradient(135deg, #6366f1, #ec4899); color: white; padding: 30px; text-align: center; }}
    .content {{ padding: 30px; }}
    .booking-details {{ background: #f8fafc; padding: 20px; border-radius: 8px; margin: 20px 0; }}
    .detail-row {{ display: flex; justify-content: space-between; margin: 10px 0; padding: 8px 0; border-bottom: 1px solid #e2e8f0; }}
    .footer {{ background: #1e293b; color: white; padding: 20px; text-align: center; font-size: 14px; }}
    .qr-section {{ text-align: center; padding: 20px; background: #f1f5f9; border-radius: 8px; margin: 20px 0; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{brand}</h1>
      <h2>{heading}</h2>
      <p>{subheading}</p>
    </div>
    <div class="content">
      <p>Dear {guest_name},</p>
      <p>{intro}</p>
      <div class="booking-details">
{rows}
      </div>
{extra}
    </div>
    <div class="footer">
      <p><strong>{brand}</strong> - Premium Hotel Booking Experience</p>
      <p>For support, contact us at {support_email}</p>
      <p style="font-size: 12px; opacity: 0.7;">This is an automated email. Please do not reply to this message.</p>
    </div>
  </div>
</body>
</html>
"""

ROW = '        <div class="detail-row"><span>{label}:</span><span>{value}</span></div>'


def _details(booking, hotel_name: str, amount_label: str):
    rows = [
        ("Booking ID", f"<strong>{html.escape(booking.booking_id)}</strong>"),
        ("Hotel", html.escape(hotel_name)),
        ("Guest Name", html.escape(booking.guest_name)),
        ("Room Type", html.escape(booking.room_type)),
        ("Check-in Date", _fmt_date(booking.check_in_date)),
        ("Check-out Date", _fmt_date(booking.check_out_date)),
        (amount_label, _fmt_amount(booking.total_amount)),
    ]
    return "\n".join(ROW.format(label=label, value=value) for label, value in rows)


def render_email(booking, hotel_name: str, heading: str, intro: str, amount_label: str = "Total Amount Paid",
                 extra: str = "", brand: Optional[str] = None) -> str:
    brand = brand or Config.FROM_NAME
    return PAGE.format(
        title=html.escape(f"{heading} - {booking.booking_id}"),
        brand=html.escape(brand),
        heading=html.escape(heading),
        subheading=html.escape(f"Thank you for choosing {hotel_name}"),
        guest_name=html.escape(booking.guest_name),
        intro=html.escape(intro),
        rows=_details(booking, hotel_name, amount_label),
        extra=extra,
        support_email=html.escape(Config.SUPPORT_EMAIL),
    )


def render_confirmation(booking, hotel_name: str) -> str:
    return render_email(
        booking, hotel_name,
        heading="Booking Confirmed!",
        intro="Your hotel booking has been confirmed. Here are your booking details:",
    )


def render_qr_code(booking, hotel_name: str, qr_base64: str) -> str:
    extra = (
        '      <div class="qr-section">\n'
        '        <h3>Quick Check-in QR Code</h3>\n'
        '        <p>Show this QR code at the hotel reception for quick check-in</p>\n'
        f'        <img src="data:image/png;base64,{qr_base64}" alt="Check-in QR code" width="200" height="200">\n'
        '      </div>'
    )
    return render_email(
        booking, hotel_name,
        heading="Your Check-in QR Code",
        intro="Keep this email handy for a faster check-in.",
        extra=extra,
    )


def render_cancellation(booking, hotel_name: str) -> str:
    return render_email(
        booking, hotel_name,
        heading="Booking Cancelled",
        intro="Your booking has been cancelled. Any refund due will reach your original payment method.",
        amount_label="Booking Amount",
    )


class EmailNotifier:
    """
    Transactional email for bookings, delivered through the EmailJS REST API.

    When EmailJS is not configured the message is only logged and the ack says
    so; a missing recipient or a non-2xx answer raises NotificationError.
    """

    def __init__(self, service_id: Optional[str] = None, template_id: Optional[str] = None,
                 public_key: Optional[str] = None, api_url: Optional[str] = None,
                 from_email: Optional[str] = None, from_name: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 10):
        self.service_id = service_id if service_id is not None else Config.EMAILJS_SERVICE_ID
        self.template_id = template_id if template_id is not None else Config.EMAILJS_TEMPLATE_ID
        self.public_key = public_key if public_key is not None else Config.EMAILJS_PUBLIC_KEY
        self.api_url = api_url or Config.EMAILJS_API_URL
        self.from_email = from_email or Config.FROM_EMAIL
        self.from_name = from_name or Config.FROM_NAME
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)

    def send_confirmation(self, booking, hotel_name: str) -> Dict[str, Any]:
        return self._send(booking, hotel_name, f"Booking Confirmation - {booking.booking_id}",
                          render_confirmation(booking, hotel_name))

    def send_qr_code(self, booking, hotel_name: str) -> Dict[str, Any]:
        qr = generate_qr_base64(build_qr_payload(booking, hotel_name))
        return self._send(booking, hotel_name, f"Check-in QR Code - {booking.booking_id}",
                          render_qr_code(booking, hotel_name, qr))

    def send_cancellation(self, booking, hotel_name: str) -> Dict[str, Any]:
        return self._send(booking, hotel_name, f"Booking Cancelled - {booking.booking_id}",
                          render_cancellation(booking, hotel_name))

    def _recipient(self, booking) -> str:
        if booking.guest_email:
            return booking.guest_email
        if booking.guest_contact and "@" in booking.guest_contact:
            return booking.guest_contact
        raise NotificationError(f"No email address on booking {booking.booking_id}")

    def _send(self, booking, hotel_name: str, subject: str, html_content: str) -> Dict[str, Any]:
        to_email = self._recipient(booking)
        params = {
            "to_email": to_email,
            "to_name": booking.guest_name,
            "from_email": self.from_email,
            "from_name": self.from_name,
            "subject": subject,
            "html_content": html_content,
            "booking_id": booking.booking_id,
            "hotel_name": hotel_name,
            "check_in": booking.check_in_date.isoformat(),
            "check_out": booking.check_out_date.isoformat(),
            "amount": str(booking.total_amount),
        }
        logger.info("Sending email '%s' to %s", subject, to_email)

        if not self.configured:
            logger.info("EmailJS not configured; email for %s logged only", booking.booking_id)
            return {"sent": False, "logged": True, "to": to_email, "subject": subject}

        try:
            r = self.session.post(self.api_url, json={
                "service_id": self.service_id,
                "template_id": self.template_id,
                "user_id": self.public_key,
                "template_params": params,
            }, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("EmailJS send error: %s", e)
            raise NotificationError(f"EmailJS unreachable: {e}") from e

        if not 200 <= r.status_code < 300:
            logger.error("EmailJS API error %s: %s", r.status_code, r.text)
            raise NotificationError(f"EmailJS API error: {r.status_code}")

        logger.info("Email '%s' sent to %s", subject, to_email)
        return {"sent": True, "logged": False, "to": to_email, "subject": subject}
