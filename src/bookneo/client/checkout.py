# client/checkout.py
"""
Guest-side Cashfree checkout driver.

Asks the BookNeo backend for a payment session, opens the Cashfree hosted
checkout for it and waits until the payment reaches a terminal state. The
wait is bounded: a checkout window left open past ``timeout`` seconds ends in
PaymentTimeout instead of waiting forever.
"""
import logging
import time
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

logger = logging.getLogger(__name__)

HOSTED_CHECKOUT_URLS = {
    "sandbox": "https://payments-test.cashfree.com/order/",
    "production": "https://payments.cashfree.com/order/",
}

PAID_STATES = {"PAID"}
CLOSED_STATES = {"EXPIRED", "TERMINATED", "TERMINATION_REQUESTED"}


class CheckoutError(Exception):
    pass


class PaymentFailed(CheckoutError):
    pass


class PaymentCancelled(CheckoutError):
    pass


class PaymentTimeout(CheckoutError):
    pass


@dataclass
class PaymentRequest:
    booking_id: str
    amount: int
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    return_url: Optional[str] = None


@dataclass
class PaymentOutcome:
    success: bool
    order_id: str


@dataclass
class CheckoutSession:
    session_id: str
    order_id: str
    booking_id: str
    url: str


def open_in_browser(session: CheckoutSession):
    webbrowser.open(session.url)


class CashfreeCheckout:
    def __init__(self, base_url: str, mode: str = "sandbox", http_client: Optional[httpx.Client] = None,
                 open_checkout: Callable[[CheckoutSession], None] = open_in_browser,
                 poll_interval: float = 3.0, timeout: float = 15 * 60,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.base_url = base_url.rstrip("/")
        self.mode = mode
        self.http = http_client
        self.open_checkout = open_checkout
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.sleep = sleep
        self.clock = clock
        self._checkout_url = None

    @property
    def loaded(self) -> bool:
        return self._checkout_url is not None

    def load_sdk(self):
        """Resolve the hosted checkout for the configured mode. Safe to call repeatedly."""
        if self.loaded:
            return self
        if self.mode not in HOSTED_CHECKOUT_URLS:
            raise CheckoutError(f"Unknown Cashfree mode: {self.mode!r}")
        if self.http is None:
            self.http = httpx.Client(base_url=self.base_url, timeout=20)
        self._checkout_url = HOSTED_CHECKOUT_URLS[self.mode]
        logger.debug("Cashfree checkout ready (mode=%s, url=%s)", self.mode, self._checkout_url)
        return self

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _json(self, response: httpx.Response):
        try:
            return response.json()
        except ValueError:
            return {}

    def create_session(self, payment: PaymentRequest) -> CheckoutSession:
        self.load_sdk()
        body = {"bookingId": payment.booking_id}
        if payment.customer_email:
            body["customerEmail"] = payment.customer_email
        if payment.return_url:
            body["returnUrl"] = payment.return_url

        r = self.http.post(self._url("/api/cashfree/create-order"), json=body)
        data = self._json(r)
        if r.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise CheckoutError(message or "Failed to create order")

        session_id = data.get("sessionId")
        order_id = data.get("providerOrderId")
        if not session_id or not order_id:
            raise CheckoutError("Backend did not return a payment session")
        return CheckoutSession(session_id=session_id, order_id=order_id, booking_id=payment.booking_id,
                               url=f"{self._checkout_url}#{session_id}")

    def pay(self, payment: PaymentRequest) -> PaymentOutcome:
        session = self.create_session(payment)
        logger.info("Opening Cashfree checkout for %s (order %s)", payment.booking_id, session.order_id)
        self.open_checkout(session)
        try:
            self._wait_for_outcome(session)
        except PaymentTimeout:
            # the Cashfree order may still be open; the webhook settles the booking
            logger.warning("Stopped waiting for %s (order %s); booking left pending",
                           payment.booking_id, session.order_id)
            raise
        except CheckoutError as e:
            self._report_failure(session, e)
            raise
        return PaymentOutcome(success=True, order_id=session.order_id)

    def _wait_for_outcome(self, session: CheckoutSession):
        deadline = self.clock() + self.timeout
        while True:
            booking = self._json(self.http.get(self._url(f"/api/bookings/{session.booking_id}")))
            payment_status = booking.get("paymentStatus") if isinstance(booking, dict) else None
            if payment_status == "completed":
                return
            if payment_status == "failed":
                raise PaymentFailed("Payment failed")

            r = self.http.get(self._url(f"/api/cashfree/order/{session.order_id}"))
            if r.status_code < 400:
                order_status = str(self._json(r).get("order_status", "")).upper()
                if order_status in PAID_STATES:
                    return
                if order_status in CLOSED_STATES:
                    raise PaymentCancelled("Payment cancelled")
            else:
                logger.warning("Order status lookup for %s failed with %s", session.order_id, r.status_code)

            if self.clock() >= deadline:
                raise PaymentTimeout(f"No payment outcome for {session.order_id} after {self.timeout:.0f}s")
            self.sleep(self.poll_interval)

    def _report_failure(self, session: CheckoutSession, error: CheckoutError):
        r = self.http.patch(self._url(f"/api/bookings/{session.booking_id}/payment"),
                            json={"paymentStatus": "failed"})
        if r.status_code >= 400 and r.status_code != 409:
            logger.warning("Could not mark %s as failed (%s): %s", session.booking_id, r.status_code, error)
