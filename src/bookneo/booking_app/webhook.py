# booking_app/webhook.py
import json
import logging

from fastapi import APIRouter, Depends, Request

from .booking_flow import BookingOrchestrator
from .dependencies import get_gateway, get_orchestrator
from .errors import AuthenticationError, BookingValidationError
from .payment import CashfreeGateway
from .schemas import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/api/webhooks/cashfree", response_model=WebhookAck)
async def cashfree_webhook(request: Request,
                           gateway: CashfreeGateway = Depends(get_gateway),
                           orchestrator: BookingOrchestrator = Depends(get_orchestrator)):
    payload = await request.body()
    if not gateway.verify_webhook_signature(payload, request.headers):
        logger.warning("Rejected Cashfree webhook with missing or invalid signature")
        raise AuthenticationError("Invalid webhook signature")

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise BookingValidationError.for_field("body", f"Webhook error {e}")
    if not isinstance(event, dict):
        raise BookingValidationError.for_field("body", "Webhook body must be a JSON object")

    logger.info("Cashfree webhook received: type=%s", event.get("type", "-"))
    # storage and provider failures surface as 5xx so Cashfree redelivers
    result = orchestrator.handle_webhook(event)

    return WebhookAck(received=True, **{
        "processed": result.get("processed", False),
        "duplicate": result.get("duplicate", False),
        "booking_id": result.get("bookingId"),
        "payment_status": result.get("paymentStatus"),
        "detail": result.get("detail"),
    })
