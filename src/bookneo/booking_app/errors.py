# booking_app/errors.py
from typing import Dict, List, Optional


class BookNeoError(Exception):
    """Base class for errors raised by the booking services."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class BookingValidationError(BookNeoError):
    status_code = 400
    public_message = "Validation failed"

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str):
        return cls({field: [message]}, message=message)


class NotFoundError(BookNeoError):
    status_code = 404
    public_message = "Not found"


class AuthenticationError(BookNeoError):
    status_code = 401
    public_message = "Invalid credentials"


class InvalidTransitionError(BookNeoError):
    status_code = 409
    public_message = "Invalid status transition"


class DuplicateRecordError(BookNeoError):
    status_code = 400
    public_message = "Record already exists"


class StorageError(BookNeoError):
    public_message = "Storage failure"


class PaymentGatewayError(BookNeoError):
    public_message = "Payment provider error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, payload=None):
        super().__init__(message)
        self.provider_status = status_code
        self.payload = payload


class NotificationError(BookNeoError):
    public_message = "Failed to send email"
