"""
Stripe Webhook Handler
Reconciles payments, bookings and Connect account state from Stripe events.

Events are not de-duplicated: each handler writes the same end state for a
repeated delivery, and a late payment_failed never overrides a settled payment.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...database import get_db
from ...errors import AppError
from ...services import stripe_service
from .service import (
    handle_account_updated,
    handle_checkout_session_completed,
    handle_payment_intent_failed,
    handle_payment_intent_succeeded,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])

EVENT_HANDLERS = {
    "account.updated": handle_account_updated,
    "connect.account.updated": handle_account_updated,
    "checkout.session.completed": handle_checkout_session_completed,
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
}


@router.post("/webhook/stripe")
@router.post("/api/webhooks/stripe")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Verify and dispatch a Stripe event.

    Signature failures return 400 (Stripe stops retrying); handler failures
    return 500 so Stripe redelivers the event.
    """
    body = await request.body()
    signature = request.headers.get("stripe-signature")
    event = stripe_service.construct_webhook_event(body, signature)

    event_type = event.get("type")
    event_object = (event.get("data") or {}).get("object") or {}
    logger.info(f"📥 Received Stripe webhook: {event_type} ({event.get('id')})")

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"ℹ️ Unhandled event type: {event_type}")
        return {"received": True}

    try:
        handler(db, event_object)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Webhook handler failed for {event_type}: {str(e)}")
        raise AppError("Webhook processing failed", 500, "WEBHOOK_HANDLER_FAILED") from e

    return {"received": True}
