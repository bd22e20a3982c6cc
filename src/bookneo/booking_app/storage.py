# booking_app/storage.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Base
from .errors import DuplicateRecordError, StorageError
from .models import Admin, Booking, Hotel, HotelUser, HotelStatus, PaymentStatus, BookingStatus, ProcessedWebhook, StaffRole

logger = logging.getLogger(__name__)


def format_booking_id(year: int, seq: int) -> str:
    return f"BN-{year}-{seq:03d}"


class RecordStore:
    """
    Thin persistence facade over a SQLAlchemy session.

    Generic operations (list/get/get_by/insert/update/delete) work on any model;
    the domain helpers below them mirror what the API handlers need. Lookups
    that find nothing return None, delete returns False. Integer ids come from
    the database's own autoincrement so concurrent inserts never share one.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------- generic -------------------------
    def list(self, model: Type[Base], order_by=None, **filters) -> List[Any]:
        try:
            query = self.db.query(model)
            for key, value in filters.items():
                if value is not None:
                    query = query.filter(getattr(model, key) == value)
            return query.order_by(order_by if order_by is not None else model.id).all()
        except SQLAlchemyError as e:
            raise StorageError(f"list {model.__tablename__} failed: {e}") from e

    def get(self, model: Type[Base], key: int):
        try:
            return self.db.get(model, key)
        except SQLAlchemyError as e:
            raise StorageError(f"get {model.__tablename__} failed: {e}") from e

    def get_by(self, model: Type[Base], **filters):
        try:
            return self.db.query(model).filter_by(**filters).first()
        except SQLAlchemyError as e:
            raise StorageError(f"get_by {model.__tablename__} failed: {e}") from e

    def insert(self, model: Type[Base], data: Dict[str, Any]):
        obj = model(**data)
        self.db.add(obj)
        self._commit(model)
        self.db.refresh(obj)
        return obj

    def update(self, model: Type[Base], key: int, partial: Dict[str, Any]):
        obj = self.get(model, key)
        if obj is None:
            return None
        for field, value in partial.items():
            setattr(obj, field, value)
        self._commit(model)
        self.db.refresh(obj)
        return obj

    def delete(self, model: Type[Base], key: int) -> bool:
        obj = self.get(model, key)
        if obj is None:
            return False
        self.db.delete(obj)
        self._commit(model)
        return True

    def _commit(self, model: Type[Base]):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Unique constraint hit on %s: %s", model.__tablename__, e.orig)
            raise DuplicateRecordError(f"{model.__name__} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"write to {model.__tablename__} failed: {e}") from e

    # ------------------------- hotels -------------------------
    def get_hotels(self, status: Optional[str] = None) -> List[Hotel]:
        return self.list(Hotel, status=status)

    def get_hotel(self, hotel_id: int) -> Optional[Hotel]:
        return self.get(Hotel, hotel_id)

    def create_hotel(self, data: Dict[str, Any]) -> Hotel:
        data = dict(data)
        data["status"] = data.get("status") or HotelStatus.active.value
        data["amenities"] = list(data.get("amenities") or [])
        return self.insert(Hotel, data)

    def update_hotel(self, hotel_id: int, partial: Dict[str, Any]) -> Optional[Hotel]:
        if "amenities" in partial and partial["amenities"] is not None:
            partial = {**partial, "amenities": list(partial["amenities"])}
        return self.update(Hotel, hotel_id, partial)

    def delete_hotel(self, hotel_id: int) -> bool:
        return self.delete(Hotel, hotel_id)

    # ------------------------- staff -------------------------
    def get_hotel_user(self, username: str) -> Optional[HotelUser]:
        return self.get_by(HotelUser, username=username)

    def create_hotel_user(self, data: Dict[str, Any]) -> HotelUser:
        data = dict(data)
        data["role"] = data.get("role") or StaffRole.staff.value
        return self.insert(HotelUser, data)

    def get_hotel_users_by_hotel(self, hotel_id: int) -> List[HotelUser]:
        return self.list(HotelUser, hotel_id=hotel_id)

    # ------------------------- bookings -------------------------
    def get_bookings(self, hotel_id: Optional[int] = None) -> List[Booking]:
        return self.list(Booking, order_by=Booking.created_at.desc(), hotel_id=hotel_id)

    def get_bookings_by_hotel(self, hotel_id: int) -> List[Booking]:
        return self.get_bookings(hotel_id=hotel_id)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.get_by(Booking, booking_id=booking_id)

    def get_booking_by_id(self, key: int) -> Optional[Booking]:
        return self.get(Booking, key)

    def get_booking_by_order(self, provider_order_id: str) -> Optional[Booking]:
        return self.get_by(Booking, provider_order_id=provider_order_id)

    def create_booking(self, data: Dict[str, Any]) -> Booking:
        data = dict(data)
        data.setdefault("payment_status", PaymentStatus.pending.value)
        data.setdefault("status", BookingStatus.confirmed.value)
        booking = Booking(**data)
        self.db.add(booking)
        try:
            # flush to get the autoincrement id, then derive the public reference from it
            self.db.flush()
            year = (booking.created_at or datetime.utcnow()).year
            booking.booking_id = format_booking_id(year, booking.id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"insert into bookings failed: {e}") from e
        self._commit(Booking)
        self.db.refresh(booking)
        return booking

    def update_booking(self, key: int, partial: Dict[str, Any]) -> Optional[Booking]:
        return self.update(Booking, key, partial)

    # ------------------------- admins -------------------------
    def get_admin(self, email: str) -> Optional[Admin]:
        return self.get_by(Admin, email=email)

    def create_admin(self, data: Dict[str, Any]) -> Admin:
        return self.insert(Admin, data)

    # ------------------------- webhook dedup -------------------------
    def webhook_processed(self, provider_order_id: str) -> bool:
        return self.get_by(ProcessedWebhook, provider_order_id=provider_order_id) is not None

    def apply_webhook(self, booking_key: int, provider_order_id: str, partial: Dict[str, Any]) -> Optional[Booking]:
        """
        Update a booking and record the webhook delivery in the same commit.

        If the commit fails neither write survives, so a redelivery of the same
        event is processed again. Raises DuplicateRecordError when another
        delivery for the order was recorded first.
        """
        booking = self.get(Booking, booking_key)
        if booking is None:
            return None
        for field, value in partial.items():
            setattr(booking, field, value)
        self.db.add(ProcessedWebhook(provider_order_id=provider_order_id,
                                     payment_status=partial.get("payment_status")))
        self._commit(ProcessedWebhook)
        self.db.refresh(booking)
        return booking
