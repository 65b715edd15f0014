"""Stripe service - payment intents, coupons and webhook verification"""

import asyncio
import logging
from typing import Any, Optional

import stripe

from ..config import STRIPE_CURRENCY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET

logger = logging.getLogger(__name__)

# Payment intent states that entitle the client to a booking token
VALID_PAYMENT_STATUSES = ("succeeded", "requires_capture", "processing")


class StripeNotConfiguredError(Exception):
    pass


def stripe_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or a plain dict"""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def payment_status_for(payment_type: str, intent_status: str) -> str:
    """Map a payment intent onto the booking's payment_status column"""
    if payment_type == "deposit":
        return "deposit_paid"
    if intent_status == "succeeded":
        return "paid"
    if intent_status == "requires_capture":
        return "authorized"
    return "processing"


class StripeService:
    """
    Service for Stripe API operations.

    The SDK is blocking, so every call runs in a worker thread.
    """

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET
        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail until configured")

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _require_key(self) -> str:
        if not self.api_key:
            raise StripeNotConfiguredError("Stripe is not configured")
        return self.api_key

    async def create_payment_intent(
        self,
        amount: float,
        metadata: dict[str, Any],
        receipt_email: Optional[str] = None,
    ) -> stripe.PaymentIntent:
        """Create a card payment intent for `amount` dollars"""
        api_key = self._require_key()
        params: dict[str, Any] = {
            "amount": to_cents(amount),
            "currency": STRIPE_CURRENCY,
            "automatic_payment_methods": {"enabled": True},
            # Stripe metadata values must be strings
            "metadata": {k: str(v) for k, v in metadata.items() if v is not None},
            "api_key": api_key,
        }
        if receipt_email:
            params["receipt_email"] = receipt_email

        intent = await asyncio.to_thread(stripe.PaymentIntent.create, **params)
        logger.info(f"💳 Created payment intent {intent.id} for ${amount:.2f}")
        return intent

    async def retrieve_payment_intent(self, payment_intent_id: str) -> stripe.PaymentIntent:
        api_key = self._require_key()
        return await asyncio.to_thread(stripe.PaymentIntent.retrieve, payment_intent_id, api_key=api_key)

    async def retrieve_coupon(self, coupon_id: str) -> stripe.Coupon:
        api_key = self._require_key()
        return await asyncio.to_thread(stripe.Coupon.retrieve, coupon_id, api_key=api_key)

    def construct_event(self, payload: bytes, signature: str) -> stripe.Event:
        """Verify a webhook payload; raises ValueError or SignatureVerificationError"""
        if not self.webhook_secret:
            raise StripeNotConfiguredError("STRIPE_WEBHOOK_SECRET is not configured")
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


stripe_service = StripeService()


def get_stripe_service() -> StripeService:
    """Dependency injection for StripeService"""
    return stripe_service
