import os
from dotenv import load_dotenv

load_dotenv()


CASHFREE_BASE_URLS = {
    "sandbox": "https://sandbox.cashfree.com/pg",
    "production": "https://api.cashfree.com/pg",
}


class Config:
    # ------------------------
    # Database
    # ------------------------
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookneo.db")

    # ------------------------
    # Cashfree Payments
    # ------------------------
    CASHFREE_APP_ID = os.getenv("CASHFREE_APP_ID")
    CASHFREE_SECRET_KEY = os.getenv("CASHFREE_SECRET_KEY")
    # Cashfree signs webhooks with the client secret unless a dedicated one is set
    CASHFREE_WEBHOOK_SECRET = os.getenv("CASHFREE_WEBHOOK_SECRET") or CASHFREE_SECRET_KEY
    CASHFREE_ENV = os.getenv("CASHFREE_ENV", "sandbox").lower()
    CASHFREE_BASE_URL = os.getenv("CASHFREE_BASE_URL", CASHFREE_BASE_URLS.get(CASHFREE_ENV, CASHFREE_BASE_URLS["sandbox"]))
    CASHFREE_API_VERSION = os.getenv("CASHFREE_API_VERSION", "2023-08-01")
    CASHFREE_TIMEOUT = float(os.getenv("CASHFREE_TIMEOUT", "15"))

    # ------------------------
    # Email (EmailJS)
    # ------------------------
    EMAILJS_SERVICE_ID = os.getenv("EMAILJS_SERVICE_ID")
    EMAILJS_TEMPLATE_ID = os.getenv("EMAILJS_TEMPLATE_ID")
    EMAILJS_PUBLIC_KEY = os.getenv("EMAILJS_PUBLIC_KEY")
    EMAILJS_API_URL = os.getenv("EMAILJS_API_URL", "https://api.emailjs.com/api/v1.0/email/send")
    FROM_EMAIL = os.getenv("FROM_EMAIL", "bookings@bookneoapp.com")
    FROM_NAME = os.getenv("FROM_NAME", "BOOK NEO")
    SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@bookneoapp.com")

    # ------------------------
    # Web
    # ------------------------
    BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
    FRONTEND_ORIGINS = [o.strip() for o in os.getenv(
        "FRONTEND_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    ).split(",") if o.strip()]

    # ------------------------
    # Logging
    # ------------------------
    LOG_FILE = os.getenv("LOG_FILE")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # ------------------------
    # Bootstrap admin (seed only, never defaulted)
    # ------------------------
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
