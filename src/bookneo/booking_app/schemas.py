# booking_app/schemas.py
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # JSON uses camelCase, python attributes stay snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------------
# HOTELS
# -------------------
class HotelCreate(CamelModel):
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    photo: Optional[str] = None
    base_rate: int = Field(..., ge=0, description="Base nightly rate in INR")
    amenities: List[str] = []
    status: Literal["active", "inactive"] = "active"


class HotelUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    photo: Optional[str] = None
    base_rate: Optional[int] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    status: Optional[Literal["active", "inactive"]] = None


class HotelOut(CamelModel):
    id: int
    name: str
    location: str
    photo: Optional[str] = None
    base_rate: int
    amenities: List[str] = []
    status: str
    created_at: Optional[datetime] = None


# -------------------
# STAFF / ADMIN
# -------------------
class HotelUserCreate(CamelModel):
    hotel_id: int
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: Literal["staff", "manager"] = "staff"


class HotelUserOut(CamelModel):
    id: int
    hotel_id: int
    username: str
    role: str
    created_at: Optional[datetime] = None


class AdminOut(CamelModel):
    id: int
    email: str
    created_at: Optional[datetime] = None


class HotelLogin(CamelModel):
    username: str
    password: str


class AdminLogin(CamelModel):
    email: str
    password: str


class HotelLoginResponse(CamelModel):
    user: HotelUserOut
    hotel: HotelOut


class AdminLoginResponse(CamelModel):
    admin: AdminOut


# -------------------
# BOOKINGS
# -------------------
RoomTypeName = Literal["suite", "deluxe", "ac", "non-ac"]


class BookingCreate(CamelModel):
    hotel_id: int
    guest_name: str
    guest_contact: str
    guest_email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+$")
    check_in_date: date
    check_out_date: date
    room_type: RoomTypeName
    special_requests: Optional[str] = None


class BookingOut(CamelModel):
    id: int
    booking_id: str
    hotel_id: int
    guest_name: str
    guest_contact: str
    guest_email: Optional[str] = None
    check_in_date: date
    check_out_date: date
    room_type: str
    total_amount: int
    special_requests: Optional[str] = None
    payment_status: str
    transaction_id: Optional[str] = None
    provider_order_id: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class PaymentStatusUpdate(CamelModel):
    payment_status: Literal["completed", "failed"]
    transaction_id: Optional[str] = None


class BookingStatusUpdate(CamelModel):
    status: Literal["cancelled", "completed"]
    refund: bool = False


# -------------------
# PAYMENTS
# -------------------
class CreateOrderRequest(CamelModel):
    booking_id: str
    customer_email: Optional[str] = None
    return_url: Optional[str] = None
    notify_url: Optional[str] = None


class CheckoutRequest(BookingCreate):
    return_url: Optional[str] = None
    notify_url: Optional[str] = None


class PaymentSession(CamelModel):
    session_id: Optional[str] = None
    provider_order_id: str
    booking_id: str
    order_status: Optional[str] = None


class CheckoutResponse(CamelModel):
    booking: BookingOut
    payment: PaymentSession


class RefundRequest(CamelModel):
    order_id: str
    amount: float = Field(..., gt=0)
    refund_id: Optional[str] = None


class WebhookAck(CamelModel):
    received: bool = True
    processed: bool
    duplicate: bool = False
    booking_id: Optional[str] = None
    payment_status: Optional[str] = None
    detail: Optional[Dict[str, Any]] = None
