import os
from datetime import date

# keep imports from touching a real database file or real credentials
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("EMAILJS_SERVICE_ID", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bookneo.auth_helper import hash_password
from bookneo.booking_app.booking_flow import BookingOrchestrator
from bookneo.booking_app.database import Base, get_db
from bookneo.booking_app.dependencies import get_gateway, get_notifier
from bookneo.booking_app.errors import NotificationError
from bookneo.booking_app.payment import CashfreeGateway
from bookneo.booking_app.storage import RecordStore
from bookneo.booking_app import models  # noqa: F401
from bookneo.main import app

WEBHOOK_SECRET = "whsec_test_secret"


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    """Stands in for requests.Session; replays queued responses and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self):
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout})
        return self._next()

    def post(self, url, json=None, timeout=None):
        self.calls.append({"method": "POST", "url": url, "json": json, "timeout": timeout})
        return self._next()


class FakeGateway(CashfreeGateway):
    """Cashfree gateway with the network calls replaced; signature checks are the real ones."""

    def __init__(self):
        super().__init__(app_id="TEST_APP", secret_key="TEST_SECRET", base_url="https://sandbox.test/pg",
                         webhook_secret=WEBHOOK_SECRET, session=FakeSession())
        self.orders = []
        self.refunds = []
        self.order_status = "ACTIVE"

    def create_order(self, order):
        self.orders.append(order)
        return {"sessionId": f"session_{len(self.orders)}", "providerOrderId": order["order_id"],
                "orderStatus": "ACTIVE"}

    def get_order(self, order_id):
        return {"order_id": order_id, "order_status": self.order_status}

    def refund(self, order_id, amount, refund_id=None, note="Refund initiated by system"):
        self.refunds.append((order_id, amount))
        return {"order_id": order_id, "refund_amount": amount, "refund_status": "PENDING"}


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    def _record(self, kind, booking, hotel_name):
        if self.fail:
            raise NotificationError("smtp down")
        self.sent.append((kind, booking.booking_id, hotel_name))
        return {"sent": True, "logged": False, "to": booking.guest_email, "subject": kind}

    def send_confirmation(self, booking, hotel_name):
        return self._record("confirmation", booking, hotel_name)

    def send_qr_code(self, booking, hotel_name):
        return self._record("qr", booking, hotel_name)

    def send_cancellation(self, booking, hotel_name):
        return self._record("cancellation", booking, hotel_name)

    def confirmations(self):
        return [s for s in self.sent if s[0] == "confirmation"]


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def orchestrator(store, gateway, notifier):
    return BookingOrchestrator(store, gateway=gateway, notifier=notifier)


@pytest.fixture
def hotel(store):
    return store.create_hotel({"name": "Test Inn", "location": "X", "base_rate": 2000})


@pytest.fixture
def booking_data(hotel):
    return {
        "hotel_id": hotel.id,
        "guest_name": "Asha Rao",
        "guest_contact": "9876543210",
        "guest_email": "asha@example.com",
        "check_in_date": date(2025, 1, 1),
        "check_out_date": date(2025, 1, 3),
        "room_type": "ac",
    }


@pytest.fixture
def staff(store, hotel):
    return store.create_hotel_user({
        "hotel_id": hotel.id,
        "username": "testinn_staff",
        "password_hash": hash_password("staff-pass-1"),
    })


@pytest.fixture
def client(session_factory, gateway, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
