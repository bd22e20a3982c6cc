# main.py
import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth_helper import hash_password, verify_admin_credentials, verify_hotel_credentials
from .booking_app.booking_flow import BookingOrchestrator
from .booking_app.database import init_db
from .booking_app.dependencies import get_gateway, get_orchestrator, get_store
from .booking_app.errors import (
    AuthenticationError,
    BookNeoError,
    BookingValidationError,
    DuplicateRecordError,
    NotFoundError,
    NotificationError,
)
from .booking_app.payment import CashfreeGateway
from .booking_app.schemas import (
    AdminLogin,
    AdminLoginResponse,
    AdminOut,
    BookingCreate,
    BookingOut,
    BookingStatusUpdate,
    CheckoutRequest,
    CheckoutResponse,
    CreateOrderRequest,
    HotelCreate,
    HotelLogin,
    HotelLoginResponse,
    HotelOut,
    HotelUpdate,
    HotelUserCreate,
    HotelUserOut,
    PaymentSession,
    PaymentStatusUpdate,
    RefundRequest,
)
from .booking_app.storage import RecordStore
from .booking_app.utils.qrcode_gen import build_qr_payload, generate_qr_png
from .booking_app.webhook import router as webhook_router
from .config import Config
from .logger import setup_logger

# ------------------------- Logging setup -------------------------
setup_logger("bookneo", Config.LOG_FILE, Config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ------------------------- FastAPI app -------------------------
app = FastAPI(title="BookNeo Hotel Booking API", version="1.0.0")

# ------------------------- CORS -------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(webhook_router)


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Database ready at %s", Config.DATABASE_URL.split("@")[-1])


# ------------------------- Error handlers -------------------------
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


@app.exception_handler(BookNeoError)
async def booking_exception_handler(request: Request, exc: BookNeoError):
    if isinstance(exc, BookingValidationError):
        return JSONResponse(status_code=400, content={"message": exc.message, "errors": exc.errors})
    if exc.status_code >= 500:
        # provider / storage / email detail stays in the server log
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.public_message})
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


# ------------------------- Helpers -------------------------
def _hotel_or_404(store: RecordStore, hotel_id: int):
    hotel = store.get_hotel(hotel_id)
    if hotel is None:
        raise NotFoundError("Hotel not found")
    return hotel


# ------------------------- Health -------------------------
@app.get("/")
def home():
    return {"status": "Backend running"}


# =====================================================
# HOTELS
# =====================================================
@app.get("/api/hotels", response_model=List[HotelOut], tags=["hotels"])
def list_hotels(status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
                store: RecordStore = Depends(get_store)):
    return store.get_hotels(status=status)


@app.get("/api/hotels/{hotel_id}", response_model=HotelOut, tags=["hotels"])
def get_hotel(hotel_id: int, store: RecordStore = Depends(get_store)):
    return _hotel_or_404(store, hotel_id)


@app.post("/api/hotels", response_model=HotelOut, status_code=201, tags=["hotels"])
def create_hotel(data: HotelCreate, store: RecordStore = Depends(get_store)):
    hotel = store.create_hotel(data.model_dump())
    logger.info("Hotel %s created: %s", hotel.id, hotel.name)
    return hotel


@app.api_route("/api/hotels/{hotel_id}", methods=["PUT", "PATCH"], response_model=HotelOut, tags=["hotels"])
def update_hotel(hotel_id: int, data: HotelUpdate, store: RecordStore = Depends(get_store)):
    partial = data.model_dump(exclude_unset=True)
    hotel = store.update_hotel(hotel_id, partial) if partial else store.get_hotel(hotel_id)
    if hotel is None:
        raise NotFoundError("Hotel not found")
    logger.info("Hotel %s updated: %s", hotel_id, sorted(partial))
    return hotel


@app.delete("/api/hotels/{hotel_id}", tags=["hotels"])
def delete_hotel(hotel_id: int, store: RecordStore = Depends(get_store)):
    if not store.delete_hotel(hotel_id):
        raise NotFoundError("Hotel not found")
    logger.info("Hotel %s deleted", hotel_id)
    return {"success": True}


@app.get("/api/hotels/{hotel_id}/users", response_model=List[HotelUserOut], tags=["hotels"])
def list_hotel_users(hotel_id: int, store: RecordStore = Depends(get_store)):
    _hotel_or_404(store, hotel_id)
    return store.get_hotel_users_by_hotel(hotel_id)


# =====================================================
# STAFF ACCOUNTS & AUTH
# =====================================================
@app.post("/api/hotel-users", response_model=HotelUserOut, status_code=201, tags=["authentication"])
def create_hotel_user(data: HotelUserCreate, store: RecordStore = Depends(get_store)):
    _hotel_or_404(store, data.hotel_id)
    if store.get_hotel_user(data.username):
        raise DuplicateRecordError("Username already exists")
    user = store.create_hotel_user({
        "hotel_id": data.hotel_id,
        "username": data.username,
        "password_hash": hash_password(data.password),
        "role": data.role,
    })
    logger.info("Hotel user %s created for hotel %s", user.username, user.hotel_id)
    return user


@app.post("/api/auth/hotel/login", response_model=HotelLoginResponse, tags=["authentication"])
def hotel_login(req: HotelLogin, store: RecordStore = Depends(get_store)):
    user, hotel, message = verify_hotel_credentials(store, req.username, req.password)
    if user is None:
        raise AuthenticationError(message)
    return HotelLoginResponse(user=HotelUserOut.model_validate(user), hotel=HotelOut.model_validate(hotel))


@app.post("/api/auth/admin/login", response_model=AdminLoginResponse, tags=["authentication"])
def admin_login(req: AdminLogin, store: RecordStore = Depends(get_store)):
    admin, message = verify_admin_credentials(store, req.email, req.password)
    if admin is None:
        raise AuthenticationError(message)
    return AdminLoginResponse(admin=AdminOut.model_validate(admin))


# =====================================================
# BOOKINGS
# =====================================================
@app.get("/api/bookings", response_model=List[BookingOut], tags=["bookings"])
def list_bookings(hotel_id: Optional[int] = Query(None, alias="hotelId"),
                  store: RecordStore = Depends(get_store)):
    return store.get_bookings(hotel_id=hotel_id)


@app.get("/api/bookings/{booking_key}", response_model=BookingOut, tags=["bookings"])
def get_booking(booking_key: str, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    return orchestrator.find_booking(booking_key)


@app.post("/api/bookings", response_model=BookingOut, status_code=201, tags=["bookings"])
def create_booking(data: BookingCreate, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    return orchestrator.create_booking(data.model_dump())


@app.post("/api/bookings/checkout", response_model=CheckoutResponse, status_code=201, tags=["bookings"])
def checkout(data: CheckoutRequest, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    fields = data.model_dump(exclude={"return_url", "notify_url"})
    booking, payment = orchestrator.checkout(fields, return_url=data.return_url, notify_url=data.notify_url)
    return CheckoutResponse(booking=BookingOut.model_validate(booking), payment=PaymentSession.model_validate(payment))


@app.patch("/api/bookings/{booking_key}/payment", response_model=BookingOut, tags=["bookings"])
def update_payment(booking_key: str, data: PaymentStatusUpdate,
                   orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    return orchestrator.update_payment_status(booking_key, data.payment_status, data.transaction_id)


@app.patch("/api/bookings/{booking_key}/status", response_model=BookingOut, tags=["bookings"])
def update_booking_status(booking_key: str, data: BookingStatusUpdate,
                          orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    if data.status == "cancelled":
        return orchestrator.cancel_booking(booking_key, refund=data.refund)
    return orchestrator.complete_booking(booking_key)


# ------------------------- Email / QR -------------------------
@app.post("/api/bookings/{booking_key}/send-confirmation", tags=["bookings"])
def send_confirmation(booking_key: str, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    try:
        ack = orchestrator.send_confirmation(booking_key)
    except BookNeoError:
        raise
    except Exception as e:
        logger.exception("Error sending confirmation for %s: %s", booking_key, e)
        raise NotificationError(f"Confirmation for {booking_key} failed: {e}") from e
    return {"success": True, **ack}


@app.get("/api/bookings/{booking_key}/qr", tags=["bookings"])
def get_booking_qr(booking_key: str, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    booking = orchestrator.find_booking(booking_key)
    hotel_name = booking.hotel.name if booking.hotel is not None else ""
    png = generate_qr_png(build_qr_payload(booking, hotel_name))
    filename = f"booking-{booking.booking_id}.png"
    return Response(content=png, media_type="image/png",
                    headers={"Content-Disposition": f'inline; filename="{filename}"'})


@app.post("/api/bookings/{booking_key}/qr", tags=["bookings"])
def send_booking_qr(booking_key: str, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    try:
        ack = orchestrator.send_qr_code(booking_key)
    except BookNeoError:
        raise
    except Exception as e:
        logger.exception("Error sending QR code for %s: %s", booking_key, e)
        raise NotificationError(f"QR code for {booking_key} failed: {e}") from e
    return {"success": True, **ack}


# =====================================================
# CASHFREE PAYMENTS
# =====================================================
@app.post("/api/cashfree/create-order", response_model=PaymentSession, tags=["payments"])
def create_order(data: CreateOrderRequest, orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    booking = orchestrator.find_booking(data.booking_id)
    return orchestrator.start_payment(booking, customer_email=data.customer_email,
                                      return_url=data.return_url, notify_url=data.notify_url)


@app.get("/api/cashfree/order/{order_id}", tags=["payments"])
def get_order(order_id: str, gateway: CashfreeGateway = Depends(get_gateway)):
    return JSONResponse(content=jsonable_encoder(gateway.get_order(order_id)))


@app.post("/api/cashfree/refund", tags=["payments"])
def refund_order(data: RefundRequest, gateway: CashfreeGateway = Depends(get_gateway)):
    return gateway.refund(data.order_id, data.amount, refund_id=data.refund_id)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
