import json

import httpx
import pytest

from bookneo.client import AuthStore, CashfreeCheckout, PaymentRequest
from bookneo.client.checkout import CheckoutError, PaymentCancelled, PaymentFailed, PaymentTimeout

BASE = "http://bookneo.test"


class FakeBackend:
    """Minimal stand-in for the BookNeo API, served through httpx.MockTransport."""

    def __init__(self, payment_statuses=("pending",), order_statuses=("ACTIVE",), create_status=200):
        self.payment_statuses = list(payment_statuses)
        self.order_statuses = list(order_statuses)
        self.create_status = create_status
        self.requests = []

    @staticmethod
    def _next(queue):
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        path = request.url.path
        if path == "/api/cashfree/create-order":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, json={"message": "Booking not found"})
            body = json.loads(request.content)
            return httpx.Response(200, json={"sessionId": "session_abc", "providerOrderId": "BN-2025-001-a1b2c3d4",
                                             "bookingId": body["bookingId"], "orderStatus": "ACTIVE"})
        if path.startswith("/api/cashfree/order/"):
            return httpx.Response(200, json={"order_status": self._next(self.order_statuses)})
        if path.endswith("/payment") and request.method == "PATCH":
            return httpx.Response(200, json={"paymentStatus": "failed"})
        if path.startswith("/api/bookings/"):
            return httpx.Response(200, json={"bookingId": "BN-2025-001",
                                             "paymentStatus": self._next(self.payment_statuses)})
        return httpx.Response(404, json={"message": "not found"})

    def patched(self):
        return [r for r in self.requests if r.method == "PATCH"]


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _checkout(backend, clock=None, timeout=60, **kwargs):
    clock = clock or FakeClock()
    opened = []
    checkout = CashfreeCheckout(BASE, http_client=httpx.Client(transport=httpx.MockTransport(backend)),
                                open_checkout=opened.append, poll_interval=5, timeout=timeout,
                                sleep=clock.sleep, clock=clock, **kwargs)
    return checkout, opened


PAYMENT = PaymentRequest(booking_id="BN-2025-001", amount=5000, customer_name="Asha Rao",
                         customer_phone="9876543210", customer_email="asha@example.com")


class TestCashfreeCheckout:
    def test_paid_after_polling(self):
        backend = FakeBackend(payment_statuses=("pending", "pending", "completed"))
        checkout, opened = _checkout(backend)

        outcome = checkout.pay(PAYMENT)

        assert outcome.success is True
        assert outcome.order_id == "BN-2025-001-a1b2c3d4"
        assert opened[0].url == "https://payments-test.cashfree.com/order/#session_abc"
        assert backend.patched() == []
        create = json.loads(backend.requests[0].content)
        assert create == {"bookingId": "BN-2025-001", "customerEmail": "asha@example.com"}

    def test_provider_reports_paid_before_webhook(self):
        backend = FakeBackend(order_statuses=("PAID",))
        checkout, _ = _checkout(backend)
        assert checkout.pay(PAYMENT).success is True

    def test_failed_payment_reports_back(self):
        backend = FakeBackend(payment_statuses=("failed",))
        checkout, _ = _checkout(backend)
        with pytest.raises(PaymentFailed):
            checkout.pay(PAYMENT)
        patch = backend.patched()[0]
        assert patch.url.path == "/api/bookings/BN-2025-001/payment"
        assert json.loads(patch.content) == {"paymentStatus": "failed"}

    def test_closed_checkout_is_cancelled(self):
        backend = FakeBackend(order_statuses=("ACTIVE", "EXPIRED"))
        checkout, _ = _checkout(backend)
        with pytest.raises(PaymentCancelled):
            checkout.pay(PAYMENT)
        assert len(backend.patched()) == 1

    def test_abandoned_checkout_times_out(self):
        clock = FakeClock()
        backend = FakeBackend()
        checkout, _ = _checkout(backend, clock=clock, timeout=30)
        with pytest.raises(PaymentTimeout):
            checkout.pay(PAYMENT)
        assert clock.now >= 30
        assert clock.sleeps == [5] * 6
        # the order may still be paid in the open window, so the booking is not marked failed
        assert backend.patched() == []

    def test_create_order_error(self):
        checkout, opened = _checkout(FakeBackend(create_status=404))
        with pytest.raises(CheckoutError, match="Booking not found"):
            checkout.pay(PAYMENT)
        assert opened == []

    def test_production_mode_uses_live_checkout(self):
        checkout, opened = _checkout(FakeBackend(payment_statuses=("completed",)), mode="production")
        checkout.pay(PAYMENT)
        assert opened[0].url == "https://payments.cashfree.com/order/#session_abc"

    def test_load_sdk_is_idempotent(self):
        checkout, _ = _checkout(FakeBackend(), mode="production")
        assert checkout.load_sdk() is checkout.load_sdk()
        assert checkout.loaded

    def test_unknown_mode(self):
        checkout, _ = _checkout(FakeBackend(), mode="staging")
        with pytest.raises(CheckoutError):
            checkout.load_sdk()


def _auth_store(handler, storage_path=None):
    http = httpx.Client(base_url=BASE, transport=httpx.MockTransport(handler))
    return AuthStore(http, storage_path=storage_path)


def _login_handler(request: httpx.Request):
    body = json.loads(request.content)
    if request.url.path == "/api/auth/hotel/login":
        if body["password"] != "staff-pass-1":
            return httpx.Response(401, json={"message": "Invalid password"})
        return httpx.Response(200, json={"user": {"id": 1, "username": body["username"], "role": "staff"},
                                         "hotel": {"id": 7, "name": "Test Inn"}})
    if request.url.path == "/api/auth/admin/login":
        return httpx.Response(200, json={"admin": {"id": 1, "email": body["email"]}})
    return httpx.Response(404)


class TestAuthStore:
    def test_login_notifies_subscribers(self):
        store = _auth_store(_login_handler)
        seen = []
        store.subscribe(seen.append)

        assert store.login_hotel("testinn_staff", "staff-pass-1") == {"success": True}

        state = store.get_state()
        assert state.is_authenticated and state.role == "hotel"
        assert state.hotel["name"] == "Test Inn"
        assert len(seen) == 1 and seen[0].user["username"] == "testinn_staff"

    def test_failed_login_keeps_state(self):
        store = _auth_store(_login_handler)
        seen = []
        store.subscribe(seen.append)

        result = store.login_hotel("testinn_staff", "wrong")

        assert result == {"success": False, "error": "Invalid password"}
        assert store.get_state().is_authenticated is False
        assert seen == []

    def test_unsubscribe(self):
        store = _auth_store(_login_handler)
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.login_admin("admin@bookneo.test", "pw")
        assert seen == []
        assert store.get_state().role == "admin"

    def test_state_copies_are_detached(self):
        store = _auth_store(_login_handler)
        state = store.get_state()
        state.is_authenticated = True
        assert store.get_state().is_authenticated is False

    def test_persist_and_restore(self, tmp_path):
        path = str(tmp_path / "auth.json")
        store = _auth_store(_login_handler, storage_path=path)
        store.login_admin("admin@bookneo.test", "pw")

        restored = _auth_store(_login_handler, storage_path=path)
        restored.initialize()
        assert restored.get_state().admin == {"id": 1, "email": "admin@bookneo.test"}

        restored.logout()
        assert not (tmp_path / "auth.json").exists()
        assert restored.get_state().is_authenticated is False

    def test_corrupt_storage_is_discarded(self, tmp_path):
        path = tmp_path / "auth.json"
        path.write_text("{not json")
        store = _auth_store(_login_handler, storage_path=str(path))
        store.initialize()
        assert store.get_state().is_authenticated is False
        assert not path.exists()
