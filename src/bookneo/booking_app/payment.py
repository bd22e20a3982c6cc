# booking_app/payment.py
import base64
import hashlib
import hmac
import logging
import uuid
from typing import Any, Dict, Mapping, Optional

import requests

from ..config import Config
from .errors import PaymentGatewayError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"
TIMESTAMP_HEADER = "x-webhook-timestamp"


class CashfreeGateway:
    """
    Server-side client for the Cashfree Payments order API.

    A non-2xx answer from Cashfree becomes a PaymentGatewayError carrying the
    provider's message; nothing is retried.
    """

    def __init__(self, app_id: Optional[str] = None, secret_key: Optional[str] = None,
                 base_url: Optional[str] = None, api_version: Optional[str] = None,
                 webhook_secret: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.app_id = app_id if app_id is not None else Config.CASHFREE_APP_ID
        self.secret_key = secret_key if secret_key is not None else Config.CASHFREE_SECRET_KEY
        self.base_url = (base_url or Config.CASHFREE_BASE_URL).rstrip("/")
        self.api_version = api_version or Config.CASHFREE_API_VERSION
        self.webhook_secret = webhook_secret if webhook_secret is not None else Config.CASHFREE_WEBHOOK_SECRET
        self.session = session or requests.Session()
        self.timeout = timeout or Config.CASHFREE_TIMEOUT

    def _headers(self) -> Dict[str, str]:
        if not (self.app_id and self.secret_key):
            raise PaymentGatewayError("CASHFREE_APP_ID / CASHFREE_SECRET_KEY not set")
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-version": self.api_version,
            "x-client-id": self.app_id,
            "x-client-secret": self.secret_key,
        }

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, headers=self._headers(), json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Cashfree %s %s transport error: %s", method, path, e)
            raise PaymentGatewayError(f"Cashfree unreachable: {e}") from e

        try:
            body = r.json()
        except ValueError:
            body = {"message": r.text}

        if not 200 <= r.status_code < 300:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error("Cashfree %s %s failed (%s): %s", method, path, r.status_code, body)
            raise PaymentGatewayError(message or f"Cashfree request failed with status {r.status_code}",
                                      status_code=r.status_code, payload=body)
        return body

    def create_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """
        order: Cashfree order body (order_id, order_amount, order_currency,
        customer_details, order_meta). Returns the session token the hosted
        checkout needs plus the provider order id.
        """
        body = self._request("POST", "/orders", json=order)
        logger.info("Cashfree order created: %s (status=%s)", body.get("order_id"), body.get("order_status"))
        return {
            "sessionId": body.get("payment_session_id"),
            "providerOrderId": body.get("order_id"),
            "orderStatus": body.get("order_status"),
        }

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/orders/{order_id}")

    def get_payments(self, order_id: str):
        return self._request("GET", f"/orders/{order_id}/payments")

    def refund(self, order_id: str, amount: float, refund_id: Optional[str] = None,
               note: str = "Refund initiated by system") -> Dict[str, Any]:
        refund_id = refund_id or f"refund_{uuid.uuid4().hex[:16]}"
        body = self._request("POST", f"/orders/{order_id}/refunds", json={
            "refund_amount": amount,
            "refund_id": refund_id,
            "refund_note": note,
        })
        logger.info("Cashfree refund %s issued for order %s (amount=%s)", refund_id, order_id, amount)
        return body

    def verify_webhook_signature(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        # Cashfree: base64(HMAC-SHA256(secret, timestamp + raw body))
        lowered = {str(k).lower(): v for k, v in headers.items()}
        signature = lowered.get(SIGNATURE_HEADER)
        timestamp = lowered.get(TIMESTAMP_HEADER)
        if not signature or not timestamp:
            return False
        if not self.webhook_secret:
            logger.error("Webhook received but no webhook secret is configured")
            return False
        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")
        expected = sign_webhook(self.webhook_secret, timestamp, raw_body)
        return hmac.compare_digest(expected, signature)


def sign_webhook(secret: str, timestamp: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), timestamp.encode("utf-8") + raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")
