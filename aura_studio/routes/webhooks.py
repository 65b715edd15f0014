"""
Stripe Webhook Handler
Keeps booking payment status in step with the PaymentIntent lifecycle
"""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..cache import claim_webhook_event, release_webhook_event
from ..database import get_db
from ..domain.bookings.service import BookingService
from ..services.cal_service import cal_service
from ..services.hapio_service import hapio_service
from ..services.stripe_service import StripeService, get_stripe_service, stripe_field

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

HANDLED_EVENTS = ("payment_intent.succeeded", "payment_intent.payment_failed")


@router.post("/stripe")
async def handle_stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """
    Handle Stripe payment webhook events

    Events handled:
    - payment_intent.succeeded - booking becomes paid / deposit_paid
    - payment_intent.payment_failed - booking becomes failed

    Deliveries are de-duplicated by event id; a delivery that fails is
    un-claimed so the Stripe retry gets applied. Anything else is acknowledged
    and ignored.
    """
    body = await request.body()
    signature = request.headers.get("stripe-signature", "")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing Stripe-Signature header")

    try:
        event = stripe_service.construct_event(body, signature)
    except ValueError as e:
        logger.warning(f"⚠️ Invalid Stripe webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload") from e
    except stripe.SignatureVerificationError as e:
        logger.warning(f"⚠️ Stripe webhook signature mismatch: {e}")
        raise HTTPException(status_code=400, detail="Invalid signature") from e

    event_id = stripe_field(event, "id")
    event_type = stripe_field(event, "type")

    if event_type not in HANDLED_EVENTS:
        logger.info(f"ℹ️ Ignoring Stripe event {event_type}")
        return {"received": True}

    if event_id and not claim_webhook_event(event_id):
        logger.info(f"🔁 Stripe event {event_id} already processed")
        return {"received": True, "duplicate": True}

    intent = stripe_field(stripe_field(event, "data"), "object")
    service = BookingService(db, stripe_service, cal_service, hapio_service)
    try:
        booking = service.apply_payment_event(event_type, intent)
    except Exception:
        if event_id:
            logger.error(f"❌ Stripe event {event_id} failed, releasing it for retry")
            release_webhook_event(event_id)
        raise

    logger.info(f"📨 Stripe {event_type} handled (booking={booking.id if booking else None})")
    return {"received": True}
