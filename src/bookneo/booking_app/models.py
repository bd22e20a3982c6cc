# booking_app/models.py
import enum
import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, JSON
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class HotelStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class StaffRole(str, enum.Enum):
    staff = "staff"
    manager = "manager"


class RoomType(str, enum.Enum):
    suite = "suite"
    deluxe = "deluxe"
    ac = "ac"
    non_ac = "non-ac"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class BookingStatus(str, enum.Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


class Hotel(Base):
    __tablename__ = "hotels"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    location = Column(String(300), nullable=False)
    photo = Column(String, nullable=True)  # url or base64 data uri
    base_rate = Column(Integer, nullable=False)  # INR per night
    amenities = Column(JSON, default=list)
    status = Column(String(16), default=HotelStatus.active.value, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    staff = relationship(
        "HotelUser",
        primaryjoin="Hotel.id == foreign(HotelUser.hotel_id)",
        viewonly=True,
    )


class HotelUser(Base):
    __tablename__ = "hotel_users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    # no FK constraint: deleting a hotel leaves its staff rows untouched
    hotel_id = Column(Integer, nullable=False, index=True)
    username = Column(String(150), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), default=StaffRole.staff.value, nullable=False)
    created_at = Column(DateTime, default=_utcnow)


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(32), unique=True, index=True, nullable=True)  # BN-YYYY-NNN, set after insert
    hotel_id = Column(Integer, nullable=False, index=True)
    guest_name = Column(String(200), nullable=False)
    guest_contact = Column(String(64), nullable=False)
    guest_email = Column(String(255), nullable=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    room_type = Column(String(16), nullable=False)
    total_amount = Column(Integer, nullable=False)
    special_requests = Column(String, nullable=True)
    payment_status = Column(String(16), default=PaymentStatus.pending.value, nullable=False)
    transaction_id = Column(String(128), nullable=True)
    provider_order_id = Column(String(64), unique=True, index=True, nullable=True)
    status = Column(String(16), default=BookingStatus.confirmed.value, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    hotel = relationship(
        "Hotel",
        primaryjoin="foreign(Booking.hotel_id) == Hotel.id",
        viewonly=True,
        lazy="joined",
    )


class Admin(Base):
    __tablename__ = "admins"
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=_utcnow)


class ProcessedWebhook(Base):
    __tablename__ = "processed_webhooks"
    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_order_id = Column(String(64), unique=True, nullable=False)
    payment_status = Column(String(16), nullable=False)
    received_at = Column(DateTime, default=_utcnow)
