# booking_app/__init__.py
from .booking_flow import BookingOrchestrator
from .pricing import calculate_total, nightly_price, nights_between
from .storage import RecordStore
