# booking_app/booking_flow.py
import logging
import re
import uuid
from typing import Any, Dict, Optional, Union

from ..config import Config
from ..logger import log_booking_event
from .errors import BookingValidationError, DuplicateRecordError, InvalidTransitionError, NotFoundError
from .models import Booking, BookingStatus, HotelStatus, PaymentStatus
from .pricing import calculate_total
from .storage import RecordStore

logger = logging.getLogger(__name__)

MIN_CONTACT_LENGTH = 10

# Cashfree payment_status values mapped onto our payment states; anything else is not terminal
PROVIDER_STATUS_MAP = {
    "SUCCESS": PaymentStatus.completed.value,
    "PAID": PaymentStatus.completed.value,
    "FAILED": PaymentStatus.failed.value,
    "USER_DROPPED": PaymentStatus.failed.value,
    "CANCELLED": PaymentStatus.failed.value,
    "VOID": PaymentStatus.failed.value,
}


def _hotel_name(booking: Booking) -> str:
    return booking.hotel.name if booking.hotel is not None else "our hotel"


def customer_phone(contact: Optional[str]) -> Optional[str]:
    """Last 10 digits of a guest contact, or None when it does not hold a phone number."""
    digits = re.sub(r"\D", "", contact or "")
    return digits[-10:] if len(digits) >= 10 else None


def _require_phone(contact: Optional[str]) -> str:
    phone = customer_phone(contact)
    if phone is None:
        raise BookingValidationError.for_field("guestContact", "A 10-digit phone number is required for online payment")
    return phone


def extract_webhook_fields(payload: Dict[str, Any]):
    """
    Pull (order_id, payment_status, transaction_id) out of a webhook body.
    Accepts the flat form {order_id, payment_status} as well as Cashfree's
    nested {data: {order: {...}, payment: {...}}} form.
    """
    data = payload.get("data") or {}
    order = data.get("order") or {}
    payment = data.get("payment") or {}
    order_id = payload.get("order_id") or order.get("order_id")
    status = payload.get("payment_status") or payment.get("payment_status")
    txn = payload.get("transaction_id") or payload.get("cf_payment_id") or payment.get("cf_payment_id")
    return order_id, (str(status).upper() if status else None), (str(txn) if txn is not None else None)


class BookingOrchestrator:
    """
    Booking -> payment -> confirmation pipeline.

    The booking row is written before any payment call, so a payment that
    never completes leaves a pending booking behind. Payment status only ever
    moves pending -> completed or pending -> failed.
    """

    def __init__(self, store: RecordStore, gateway=None, notifier=None):
        self.store = store
        self.gateway = gateway
        self.notifier = notifier

    # ------------------------- lookups -------------------------
    def find_booking(self, key: Union[int, str]) -> Booking:
        key = str(key)
        booking = self.store.get_booking_by_id(int(key)) if key.isdigit() else self.store.get_booking(key)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    # ------------------------- creation -------------------------
    def validate_booking(self, data: Dict[str, Any]):
        errors: Dict[str, list] = {}
        for field, label in (("guest_name", "guestName"), ("guest_contact", "guestContact")):
            if not str(data.get(field) or "").strip():
                errors.setdefault(label, []).append("This field is required")
        contact = str(data.get("guest_contact") or "").strip()
        if contact and len(contact) < MIN_CONTACT_LENGTH:
            errors.setdefault("guestContact", []).append(
                f"Contact must be at least {MIN_CONTACT_LENGTH} characters")
        if errors:
            raise BookingValidationError(errors)

        hotel = self.store.get_hotel(data["hotel_id"])
        if hotel is None:
            raise NotFoundError("Hotel not found")
        if hotel.status != HotelStatus.active.value:
            raise BookingValidationError.for_field("hotelId", "Hotel is not accepting bookings")

        total, nights = calculate_total(data["room_type"], hotel.base_rate,
                                        data["check_in_date"], data["check_out_date"])
        return hotel, total, nights

    def create_booking(self, data: Dict[str, Any]) -> Booking:
        return self._insert_booking(data, *self.validate_booking(data))

    def _insert_booking(self, data: Dict[str, Any], hotel, total: int, nights: int) -> Booking:
        record = {
            "hotel_id": hotel.id,
            "guest_name": data["guest_name"].strip(),
            "guest_contact": data["guest_contact"].strip(),
            "guest_email": data.get("guest_email"),
            "check_in_date": data["check_in_date"],
            "check_out_date": data["check_out_date"],
            "room_type": data["room_type"],
            "total_amount": total,
            "special_requests": data.get("special_requests"),
            "payment_status": PaymentStatus.pending.value,
            "status": BookingStatus.confirmed.value,
        }
        booking = self.store.create_booking(record)
        log_booking_event(logger, "booking created", booking.booking_id,
                          hotel=hotel.id, nights=nights, total=total)
        return booking

    # ------------------------- payment -------------------------
    def start_payment(self, booking: Booking, customer_email: Optional[str] = None,
                      return_url: Optional[str] = None, notify_url: Optional[str] = None) -> Dict[str, Any]:
        if booking.payment_status != PaymentStatus.pending.value:
            raise InvalidTransitionError(f"Booking {booking.booking_id} is already {booking.payment_status}")
        if booking.status == BookingStatus.cancelled.value:
            raise InvalidTransitionError(f"Booking {booking.booking_id} is cancelled")

        phone = _require_phone(booking.guest_contact)
        order_id = f"{booking.booking_id}-{uuid.uuid4().hex[:8]}"
        base = Config.BASE_URL.rstrip("/")
        customer = {
            "customer_id": f"guest_{phone}",
            "customer_name": booking.guest_name,
            "customer_phone": phone,
        }
        email = customer_email or booking.guest_email
        if email:
            customer["customer_email"] = email

        session = self.gateway.create_order({
            "order_id": order_id,
            "order_amount": booking.total_amount,
            "order_currency": "INR",
            "customer_details": customer,
            "order_meta": {
                "return_url": return_url or f"{base}/booking-success/{booking.booking_id}?order_id={{order_id}}",
                "notify_url": notify_url or f"{base}/api/webhooks/cashfree",
            },
            "order_tags": {"booking_id": booking.booking_id},
        })
        provider_order_id = session.get("providerOrderId") or order_id
        self.store.update_booking(booking.id, {"provider_order_id": provider_order_id})
        log_booking_event(logger, "payment started", booking.booking_id, order=provider_order_id)
        return {
            "sessionId": session.get("sessionId"),
            "providerOrderId": provider_order_id,
            "bookingId": booking.booking_id,
            "orderStatus": session.get("orderStatus"),
        }

    def checkout(self, data: Dict[str, Any], return_url: Optional[str] = None,
                 notify_url: Optional[str] = None):
        validated = self.validate_booking(data)
        # Cashfree needs a phone number; refuse before anything is stored
        _require_phone(data.get("guest_contact"))
        booking = self._insert_booking(data, *validated)
        payment = self.start_payment(booking, return_url=return_url, notify_url=notify_url)
        return self.find_booking(booking.id), payment

    def update_payment_status(self, key: Union[int, str], payment_status: str,
                              transaction_id: Optional[str] = None) -> Booking:
        booking = self.find_booking(key)
        if booking.payment_status == payment_status:
            return booking
        if booking.payment_status != PaymentStatus.pending.value:
            raise InvalidTransitionError(
                f"Payment for {booking.booking_id} is already {booking.payment_status}")
        partial = {"payment_status": payment_status}
        if transaction_id:
            partial["transaction_id"] = transaction_id
        booking = self.store.update_booking(booking.id, partial)
        log_booking_event(logger, "payment status updated", booking.booking_id,
                          status=payment_status, txn=transaction_id)
        return booking

    # ------------------------- webhook -------------------------
    def handle_webhook(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        order_id, provider_status, txn = extract_webhook_fields(payload)
        if not order_id:
            raise BookingValidationError.for_field("order_id", "Missing order id")
        if not provider_status:
            raise BookingValidationError.for_field("payment_status", "Missing payment status")

        new_status = PROVIDER_STATUS_MAP.get(provider_status)
        if new_status is None:
            logger.info("Webhook for %s with non-terminal status %s ignored", order_id, provider_status)
            return {"processed": False, "paymentStatus": provider_status}

        booking = self.store.get_booking_by_order(order_id)
        if booking is None:
            logger.warning("Webhook for unknown provider order %s", order_id)
            return {"processed": False, "detail": {"reason": "unknown order"}}

        if self.store.webhook_processed(order_id):
            return self._duplicate_webhook(order_id, booking)

        if booking.payment_status != PaymentStatus.pending.value:
            logger.warning("Webhook %s for %s arrived after payment was already %s",
                           provider_status, booking.booking_id, booking.payment_status)
            return {"processed": False, "bookingId": booking.booking_id,
                    "paymentStatus": booking.payment_status}

        partial = {"payment_status": new_status}
        if txn:
            partial["transaction_id"] = txn
        try:
            booking = self.store.apply_webhook(booking.id, order_id, partial)
        except DuplicateRecordError:
            # a concurrent delivery of the same event committed first
            return self._duplicate_webhook(order_id, self.find_booking(booking.id))
        if booking is None:
            raise NotFoundError("Booking not found")
        log_booking_event(logger, "payment status updated", booking.booking_id,
                          status=new_status, txn=txn, source="webhook")

        if new_status == PaymentStatus.completed.value:
            try:
                self.notifier.send_confirmation(booking, _hotel_name(booking))
            except Exception as e:
                # payment status is already persisted; the provider must not retry because of email
                logger.exception("Confirmation email for %s failed: %s", booking.booking_id, e)

        return {"processed": True, "bookingId": booking.booking_id, "paymentStatus": new_status}

    def _duplicate_webhook(self, order_id: str, booking: Booking) -> Dict[str, Any]:
        logger.info("Duplicate webhook for %s (%s) ignored", order_id, booking.booking_id)
        return {"processed": False, "duplicate": True, "bookingId": booking.booking_id,
                "paymentStatus": booking.payment_status}

    # ------------------------- notifications -------------------------
    def send_confirmation(self, key: Union[int, str]) -> Dict[str, Any]:
        booking = self.find_booking(key)
        return self.notifier.send_confirmation(booking, _hotel_name(booking))

    def send_qr_code(self, key: Union[int, str]) -> Dict[str, Any]:
        booking = self.find_booking(key)
        return self.notifier.send_qr_code(booking, _hotel_name(booking))

    # ------------------------- lifecycle -------------------------
    def cancel_booking(self, key: Union[int, str], refund: bool = False) -> Booking:
        booking = self.find_booking(key)
        if booking.status == BookingStatus.cancelled.value:
            return booking
        if booking.status == BookingStatus.completed.value:
            raise InvalidTransitionError(f"Booking {booking.booking_id} is already completed")

        if refund and booking.payment_status == PaymentStatus.completed.value and booking.provider_order_id:
            self.gateway.refund(booking.provider_order_id, booking.total_amount)

        booking = self.store.update_booking(booking.id, {"status": BookingStatus.cancelled.value})
        log_booking_event(logger, "booking cancelled", booking.booking_id, refund=refund)
        try:
            self.notifier.send_cancellation(booking, _hotel_name(booking))
        except Exception as e:
            logger.exception("Cancellation email for %s failed: %s", booking.booking_id, e)
        return booking

    def complete_booking(self, key: Union[int, str]) -> Booking:
        booking = self.find_booking(key)
        if booking.status == BookingStatus.completed.value:
            return booking
        if booking.status == BookingStatus.cancelled.value:
            raise InvalidTransitionError(f"Booking {booking.booking_id} is cancelled")
        booking = self.store.update_booking(booking.id, {"status": BookingStatus.completed.value})
        log_booking_event(logger, "booking completed", booking.booking_id)
        return booking
