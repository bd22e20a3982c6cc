# seed_hotels.py
import logging

from .auth_helper import hash_password
from .booking_app.database import SessionLocal, init_db
from .booking_app.models import Admin, Hotel
from .booking_app.storage import RecordStore
from .config import Config

logger = logging.getLogger(__name__)

sample_hotels = [
    {
        "name": "Grand Palace Hotel",
        "location": "Mumbai, Maharashtra",
        "photo": "https://images.unsplash.com/photo-1566073771259-6a8506099945",
        "base_rate": 3500,
        "amenities": ["WiFi", "Pool", "Gym", "Spa", "Restaurant"],
    },
    {
        "name": "Ocean View Resort",
        "location": "Goa, India",
        "photo": "https://images.unsplash.com/photo-1571003123894-1f0594d2b5d9",
        "base_rate": 2800,
        "amenities": ["WiFi", "Pool", "Beach Access", "Restaurant", "Bar"],
    },
]


def seed(store: RecordStore, admin_email=None, admin_password=None):
    """Insert sample hotels and the bootstrap admin if they are missing. Returns counts."""
    created = {"hotels": 0, "admins": 0}
    for data in sample_hotels:
        if store.get_by(Hotel, name=data["name"]) is None:
            store.create_hotel(data)
            created["hotels"] += 1

    admin_email = admin_email or Config.ADMIN_EMAIL
    admin_password = admin_password or Config.ADMIN_PASSWORD
    if admin_email and admin_password:
        if store.get_by(Admin, email=admin_email) is None:
            store.create_admin({"email": admin_email, "password_hash": hash_password(admin_password)})
            created["admins"] += 1
    else:
        logger.warning("ADMIN_EMAIL / ADMIN_PASSWORD not set; no admin account seeded")
    return created


def main():
    init_db()
    session = SessionLocal()
    try:
        created = seed(RecordStore(session))
    finally:
        session.close()
    print(f"✅ Seeded BookNeo data: {created['hotels']} hotel(s), {created['admins']} admin(s).")


if __name__ == "__main__":
    main()
