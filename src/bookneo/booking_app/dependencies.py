# booking_app/dependencies.py
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .booking_flow import BookingOrchestrator
from .database import get_db
from .payment import CashfreeGateway
from .services.notify import EmailNotifier
from .storage import RecordStore


@lru_cache(maxsize=1)
def get_gateway() -> CashfreeGateway:
    return CashfreeGateway()


@lru_cache(maxsize=1)
def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_orchestrator(store: RecordStore = Depends(get_store),
                     gateway: CashfreeGateway = Depends(get_gateway),
                     notifier: EmailNotifier = Depends(get_notifier)) -> BookingOrchestrator:
    return BookingOrchestrator(store, gateway=gateway, notifier=notifier)
