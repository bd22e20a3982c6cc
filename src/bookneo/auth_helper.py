import logging
from typing import Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from .booking_app.models import Admin, Hotel, HotelUser
from .booking_app.storage import RecordStore

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def verify_hotel_credentials(store: RecordStore, username: str, password: str) -> Tuple[Optional[HotelUser], Optional[Hotel], str]:
    """
    Verify a hotel staff login.
    Returns: (user, hotel, message); user and hotel are None unless verified.
    """
    logger.info("Hotel login attempt for username: %s", username)
    user = store.get_hotel_user(username)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Hotel login failed for %s", username)
        return None, None, "Invalid credentials"

    hotel = store.get_hotel(user.hotel_id)
    if hotel is None:
        logger.warning("Hotel login for %s refers to missing hotel %s", username, user.hotel_id)
        return None, None, "Hotel not found"

    logger.info("Hotel user %s logged in (hotel=%s)", username, hotel.id)
    return user, hotel, "Verified"


def verify_admin_credentials(store: RecordStore, email: str, password: str) -> Tuple[Optional[Admin], str]:
    logger.info("Admin login attempt for %s", email)
    admin = store.get_admin(email)
    if admin is None or not verify_password(password, admin.password_hash):
        logger.warning("Admin login failed for %s", email)
        return None, "Invalid credentials"
    logger.info("Admin %s logged in", email)
    return admin, "Verified"
