"""
Payment submission flow for the booking modal.

BookingSession owns the form state (contact details, payment option, discount,
terms) and runs the submission steps in order, stopping at the first failure
with a message for the user. Nothing is rolled back on failure; the hold is
left to expire or be released.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Protocol
from urllib.parse import urlencode

import stripe

from ..config import DEPOSIT_PERCENT, SITE_URL, STRIPE_PUBLISHABLE_KEY
from ..services.stripe_service import VALID_PAYMENT_STATUSES, stripe_field
from ..shared.validators import extract_numeric_price, is_valid_email
from .api_client import BookingApiClient, BookingApiError
from .models import ContactDetails, DiscountValidation, Reservation, SlotSelection
from .reservation_hold import ReservationHold

logger = logging.getLogger(__name__)

CONTACT_ERROR_MESSAGE = "Please correct the highlighted contact information."
DEPOSIT_ACK_MESSAGE = "Please acknowledge that the remaining balance will be due at the appointment."
NO_HOLD_MESSAGE = "Unable to locate booking reference. Please close and reselect your time."
TERMS_MESSAGE = "Please accept the terms and conditions."
DISCOUNT_EMAIL_MESSAGE = "Please enter your email address to verify your eligibility for discount codes"
PAYMENT_INCOMPLETE_MESSAGE = "Payment was not completed. Please try again."
PAYMENT_START_MESSAGE = "Failed to start payment process. Please try again."
BOOKING_SUPPORT_MESSAGE = (
    "Your payment was received but we could not finish your booking. "
    "Please contact the studio with payment reference {payment_intent_id}."
)


class CardConfirmationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CardConfirmer(Protocol):
    async def confirm(self, payment_intent_id: str, client_secret: str, payment_method: Any) -> Any:
        """Confirm the intent; raises CardConfirmationError with a user-facing message"""
        ...


class StripeCardConfirmer:
    """Confirms a PaymentIntent with the publishable key and its client secret"""

    def __init__(self, publishable_key: Optional[str] = None):
        self.publishable_key = publishable_key or STRIPE_PUBLISHABLE_KEY

    async def confirm(self, payment_intent_id: str, client_secret: str, payment_method: Any) -> Any:
        if not self.publishable_key:
            raise CardConfirmationError("Payment form is not ready. Please wait a moment and try again.")
        try:
            return await asyncio.to_thread(
                stripe.PaymentIntent.confirm,
                payment_intent_id,
                payment_method=payment_method,
                client_secret=client_secret,
                api_key=self.publishable_key,
            )
        except stripe.StripeError as e:
            # Card declines carry a message meant for the cardholder
            raise CardConfirmationError(e.user_message or "Payment failed. Please try again.") from e


def _amount(value: Any, default: float) -> float:
    return default if value is None else float(value)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def build_verification_url(
    site_url: str,
    token: str,
    payment_intent_id: str,
    slot: SlotSelection,
    contact: ContactDetails,
    reservation: Optional[Reservation],
) -> str:
    query = urlencode(
        {
            "token": token,
            "paymentIntentId": payment_intent_id,
            "slot": _compact_json(slot.to_payload()),
            "contact": _compact_json(contact.to_payload()),
            "reservation": _compact_json(reservation.to_payload() if reservation else None),
        }
    )
    return f"{site_url.rstrip('/')}/book/verify?{query}"


class BookingSession:
    """One open booking modal for one service"""

    def __init__(
        self,
        service: dict[str, Any],
        client: BookingApiClient,
        hold: ReservationHold,
        confirmer: CardConfirmer,
        site_url: Optional[str] = None,
        deposit_percent: int = DEPOSIT_PERCENT,
    ):
        self.service = service
        self.client = client
        self.hold = hold
        self.confirmer = confirmer
        self.site_url = site_url or SITE_URL
        self.deposit_percent = deposit_percent

        self.contact = ContactDetails()
        self.payment_type = "full"
        self.deposit_acknowledged = False
        self.terms_accepted = False
        self.discount: Optional[DiscountValidation] = None

        self.processing = False
        self.succeeded = False
        self.error: Optional[str] = None
        self.field_errors: dict[str, str] = {}
        self.verification_url: Optional[str] = None

    # ------------------------------------------------------------------
    # Amounts
    # ------------------------------------------------------------------

    @property
    def slot(self) -> Optional[SlotSelection]:
        return self.hold.slot

    @property
    def base_amount(self) -> float:
        return extract_numeric_price(self.service.get("price"))

    @property
    def discounted_amount(self) -> float:
        if self.discount and self.discount.valid:
            return round(max(0.0, self.base_amount - self.discount.discount_amount), 2)
        return self.base_amount

    @property
    def amount_due_today(self) -> float:
        if self.payment_type == "deposit":
            return round(self.discounted_amount * self.deposit_percent / 100, 2)
        return self.discounted_amount

    @property
    def balance_due(self) -> float:
        return round(self.discounted_amount - self.amount_due_today, 2)

    # ------------------------------------------------------------------
    # Form actions
    # ------------------------------------------------------------------

    async def select_slot(self, slot: SlotSelection) -> None:
        await self.hold.select(slot)

    def choose_payment_type(self, payment_type: str) -> None:
        if payment_type not in ("full", "deposit"):
            raise ValueError(f"Unknown payment type: {payment_type}")
        self.payment_type = payment_type
        if payment_type == "full":
            self.deposit_acknowledged = False

    async def apply_discount(self, code: str) -> DiscountValidation:
        code = (code or "").strip()
        if not code:
            self.discount = None
            self.error = None
            return DiscountValidation()

        if not is_valid_email(self.contact.email):
            result = DiscountValidation(code=code, requires_email=True, error=DISCOUNT_EMAIL_MESSAGE)
            self.discount = result
            self.error = DISCOUNT_EMAIL_MESSAGE
            return result

        try:
            data = await self.client.validate_discount(
                code, self.base_amount, self.contact.email.strip(), self.contact.full_name or None
            )
        except BookingApiError as e:
            result = DiscountValidation(
                code=code,
                original_amount=self.base_amount,
                final_amount=self.base_amount,
                error=e.message or "Invalid discount code",
            )
        else:
            result = DiscountValidation(
                valid=bool(data.get("valid")),
                code=data.get("code") or code.upper(),
                discount_amount=_amount(data.get("discountAmount"), 0.0),
                original_amount=_amount(data.get("originalAmount"), self.base_amount),
                final_amount=_amount(data.get("finalAmount"), self.base_amount),
                coupon=data.get("coupon") or {},
            )
            if not result.valid:
                result.error = "Invalid discount code"

        self.discount = result
        self.error = result.error
        return result

    @property
    def can_submit(self) -> bool:
        return (
            not self.processing
            and not self.succeeded
            and self.contact.is_complete
            and not (self.payment_type == "deposit" and not self.deposit_acknowledged)
            and self.terms_accepted
            and self.hold.is_held_for(self.slot)
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _halt(self, message: str) -> None:
        self.error = message
        logger.info(f"🛑 Booking submission halted: {message}")

    def _intent_payload(self) -> dict[str, Any]:
        discount_code = self.discount.code if self.discount and self.discount.valid else None
        return {
            "serviceId": self.service.get("slug"),
            "paymentType": self.payment_type,
            "discountCode": discount_code,
            "customerEmail": self.contact.email.strip(),
            "customerName": self.contact.full_name,
            "customerPhone": self.contact.to_payload()["phone"],
            "slotStartTime": self.slot.start_time if self.slot else None,
            "reservationId": self.hold.reservation.id if self.hold.reservation else None,
        }

    async def submit(self, payment_method: Any) -> Optional[str]:
        """Run the payment sequence; returns the verification URL on success"""
        if self.processing or self.succeeded:
            return None

        self.field_errors = self.contact.validate()
        if self.field_errors:
            self._halt(CONTACT_ERROR_MESSAGE)
            return None

        if self.payment_type == "deposit" and not self.deposit_acknowledged:
            self._halt(DEPOSIT_ACK_MESSAGE)
            return None

        if not self.terms_accepted:
            self._halt(TERMS_MESSAGE)
            return None

        slot = self.slot
        if not self.hold.is_held_for(slot):
            self._halt(NO_HOLD_MESSAGE)
            return None

        self.processing = True
        self.error = None
        try:
            return await self._pay(slot, payment_method)
        finally:
            self.processing = False

    async def _pay(self, slot: SlotSelection, payment_method: Any) -> Optional[str]:
        try:
            intent = await self.client.create_payment_intent(self._intent_payload())
        except BookingApiError as e:
            self._halt(e.message or PAYMENT_START_MESSAGE)
            return None

        intent_id = (intent or {}).get("paymentIntentId")
        client_secret = (intent or {}).get("clientSecret")
        if not intent_id or not client_secret:
            logger.error(f"❌ Payment intent response missing fields: {intent}")
            self._halt(PAYMENT_START_MESSAGE)
            return None

        try:
            confirmed = await self.confirmer.confirm(intent_id, client_secret, payment_method)
        except CardConfirmationError as e:
            self._halt(e.message)
            return None

        status = stripe_field(confirmed, "status")
        if status not in VALID_PAYMENT_STATUSES:
            self._halt(PAYMENT_INCOMPLETE_MESSAGE)
            return None

        # Payment is confirmed from here on
        try:
            token = await self.client.create_booking_token(intent_id, slot.to_payload())
        except BookingApiError as e:
            logger.error(f"❌ Booking token failed for paid intent {intent_id}: {e}")
            token = None

        token_value = (token or {}).get("token")
        if not token_value:
            self._halt(BOOKING_SUPPORT_MESSAGE.format(payment_intent_id=intent_id))
            return None

        self.verification_url = build_verification_url(
            self.site_url, token_value, intent_id, slot, self.contact, self.hold.reservation
        )
        self.succeeded = True
        logger.info(f"✅ Payment {intent_id} confirmed for {slot.key}")
        return self.verification_url

    async def close(self) -> None:
        await self.hold.close()
