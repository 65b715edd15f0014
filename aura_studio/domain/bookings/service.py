"""Booking service - token issuing, verification, creation and cancellation"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import BOOKING_TOKEN_TTL_MINUTES, DEPOSIT_PERCENT, STUDIO_TIMEZONE
from ...models import Booking
from ...security_utils import create_jwt_token, sanitize_text, verify_jwt_token
from ...services.cal_service import CalApiError, CalService
from ...services.hapio_service import HapioError, HapioService
from ...services.stripe_service import (
    VALID_PAYMENT_STATUSES,
    StripeService,
    payment_status_for,
    stripe_field,
)
from ...shared.validators import split_full_name
from .repository import BookingRepository
from .schemas import (
    BookingCreate,
    BookingCreateResponse,
    BookingSummary,
    CancelBookingResponse,
    CreateTokenRequest,
    CreateTokenResponse,
    VerifiedBooking,
    VerifyTokenResponse,
)

logger = logging.getLogger(__name__)

BOOKING_TOKEN_PURPOSE = "booking"
WELCOME_CODE = "WELCOME15"


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class BookingService:
    """Service layer for booking business logic"""

    def __init__(
        self,
        db: Session,
        stripe_service: StripeService,
        cal_service: CalService,
        hapio_service: HapioService,
    ):
        self.db = db
        self.stripe = stripe_service
        self.cal = cal_service
        self.hapio = hapio_service
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Booking tokens
    # ------------------------------------------------------------------

    async def create_token(self, data: CreateTokenRequest) -> CreateTokenResponse:
        """Exchange a successful payment for a short-lived booking token"""
        if not data.paymentIntentId:
            raise HTTPException(status_code=400, detail="Payment intent ID is required")

        slot = data.selectedSlot
        if not slot or not slot.startTime or not slot.eventTypeId:
            raise HTTPException(status_code=400, detail="Selected availability slot is required")

        slot_details = {
            "startTime": slot.startTime,
            "eventTypeId": slot.eventTypeId,
            "timezone": slot.timezone or STUDIO_TIMEZONE,
            "duration": slot.duration,
            "label": slot.label,
        }

        try:
            intent = await self.stripe.retrieve_payment_intent(data.paymentIntentId)
        except stripe.StripeError as e:
            logger.warning(f"⚠️ Could not retrieve payment intent {data.paymentIntentId}: {e}")
            raise HTTPException(status_code=400, detail="Invalid payment intent") from e

        if intent.status not in VALID_PAYMENT_STATUSES:
            logger.warning(f"⚠️ Token requested for unpaid intent {intent.id} ({intent.status})")
            raise HTTPException(status_code=400, detail="Payment not completed. Please complete payment first.")

        metadata = stripe_field(intent, "metadata") or {}
        payment_type = stripe_field(metadata, "paymentType") or "full"
        amount_charged = (stripe_field(intent, "amount") or 0) / 100
        final_amount = _to_float(
            stripe_field(metadata, "finalAmount"), (stripe_field(intent, "amount_received") or 0) / 100
        )
        if stripe_field(metadata, "depositAmount"):
            deposit_amount = _to_float(stripe_field(metadata, "depositAmount"))
        else:
            deposit_amount = amount_charged if payment_type == "deposit" else final_amount
        if stripe_field(metadata, "balanceDue"):
            balance_due = _to_float(stripe_field(metadata, "balanceDue"))
        else:
            balance_due = max(0.0, final_amount - deposit_amount)

        expires_at = datetime.now(timezone.utc) + timedelta(minutes=BOOKING_TOKEN_TTL_MINUTES)
        token = create_jwt_token(
            {"sub": data.paymentIntentId, "purpose": BOOKING_TOKEN_PURPOSE},
            expires_delta=timedelta(minutes=BOOKING_TOKEN_TTL_MINUTES),
        )

        discount_code = stripe_field(metadata, "discountCode")
        payment_details = {
            "paymentType": payment_type,
            "depositAmount": deposit_amount,
            "balanceDue": balance_due,
            "finalAmount": final_amount,
            "depositPercent": stripe_field(metadata, "depositPercent") or str(DEPOSIT_PERCENT),
        }
        token_metadata = {
            "bookingToken": token,
            "tokenExpiresAt": _iso(expires_at),
            "paymentType": payment_type,
            "paymentDetails": payment_details,
            "selectedSlot": slot_details,
        }
        booking_fields = {
            "payment_type": payment_type,
            "amount": amount_charged,
            "deposit_amount": deposit_amount,
            "final_amount": final_amount,
            "discount_code": discount_code,
            "discount_amount": _to_float(stripe_field(metadata, "discountAmount")),
            "payment_status": payment_status_for(payment_type, intent.status),
        }

        booking = self.repo.get_by_payment_intent(self.db, data.paymentIntentId)
        if booking:
            # JSON columns are replaced wholesale so the change is tracked
            merged = {**(booking.booking_metadata or {}), **token_metadata}
            self.repo.update_booking(self.db, booking, booking_metadata=merged, **booking_fields)
            logger.info(f"🔄 Refreshed booking token for booking {booking.id}")
        else:
            booking = self.repo.create_booking(
                self.db,
                service_id=stripe_field(metadata, "serviceId") or "unknown",
                service_name=stripe_field(metadata, "serviceName") or "Unknown Service",
                client_name=stripe_field(metadata, "customerName"),
                client_email=stripe_field(metadata, "customerEmail"),
                client_phone=stripe_field(metadata, "customerPhone"),
                booking_date=_parse_iso(slot.startTime),
                payment_intent_id=data.paymentIntentId,
                booking_metadata=token_metadata,
                **booking_fields,
            )
            logger.info(f"✅ Created booking {booking.id} for payment {data.paymentIntentId}")

        self._record_customer(metadata, discount_code)

        return CreateTokenResponse(
            token=token,
            expiresAt=_iso(expires_at),
            paymentIntentId=data.paymentIntentId,
            paymentStatus=intent.status,
        )

    def _record_customer(self, metadata: Any, discount_code: Optional[str]) -> None:
        email = stripe_field(metadata, "customerEmail")
        if not email:
            return
        names = split_full_name(stripe_field(metadata, "customerName"))
        self.repo.upsert_customer(
            self.db,
            email,
            first_name=names[0] if names else None,
            last_name=names[1] if names else None,
            phone=stripe_field(metadata, "customerPhone"),
            used_welcome_offer=(discount_code or "").upper() == WELCOME_CODE,
        )

    async def _payment_is_valid(self, booking: Booking) -> bool:
        if not booking.payment_intent_id:
            return booking.payment_status in ("paid", "deposit_paid")
        try:
            intent = await self.stripe.retrieve_payment_intent(booking.payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Error verifying payment {booking.payment_intent_id}: {e}")
            return False
        return intent.status in VALID_PAYMENT_STATUSES

    async def verify_token(
        self, token: Optional[str] = None, payment_intent_id: Optional[str] = None
    ) -> VerifyTokenResponse:
        """valid = token not expired AND payment valid AND slot not booked yet"""
        if not token and not payment_intent_id:
            raise HTTPException(status_code=400, detail="Token or payment intent ID is required")

        booking = None
        if token:
            # Expiry is reported in the response rather than rejected outright
            payload = verify_jwt_token(token, purpose=BOOKING_TOKEN_PURPOSE, verify_exp=False)
            if payload:
                booking = self.repo.get_by_payment_intent(self.db, payload["sub"])
                if booking and (booking.booking_metadata or {}).get("bookingToken") != token:
                    booking = None
        else:
            booking = self.repo.get_by_payment_intent(self.db, payment_intent_id)

        if not booking:
            raise HTTPException(status_code=404, detail={"error": "Invalid booking token", "valid": False})

        metadata = booking.booking_metadata or {}
        expires_at = _parse_iso(metadata.get("tokenExpiresAt"))
        is_expired = bool(expires_at and expires_at < datetime.now(timezone.utc))
        payment_valid = await self._payment_is_valid(booking)
        is_booked = bool(booking.hapio_booking_id or booking.cal_booking_id) and (
            booking.payment_status != "cancelled"
        )

        return VerifyTokenResponse(
            valid=not is_expired and payment_valid and not is_booked,
            expired=is_expired,
            paymentValid=payment_valid,
            isBooked=is_booked,
            booking=VerifiedBooking(
                id=booking.id,
                serviceName=booking.service_name,
                serviceId=booking.service_id,
                calBookingId=booking.cal_booking_id,
                hapioBookingId=booking.hapio_booking_id,
                paymentStatus=booking.payment_status,
                paymentType=metadata.get("paymentType") or booking.payment_type or "full",
                paymentIntentId=booking.payment_intent_id,
                expiresAt=metadata.get("tokenExpiresAt"),
                selectedSlot=metadata.get("selectedSlot"),
            ),
        )

    # ------------------------------------------------------------------
    # Explicit create / cancel
    # ------------------------------------------------------------------

    def create_booking(self, data: BookingCreate) -> BookingCreateResponse:
        if not data.serviceId or not data.serviceName or not data.clientEmail or not data.amount:
            raise HTTPException(
                status_code=400,
                detail="Missing required fields: serviceId, serviceName, clientEmail, amount",
            )

        metadata = dict(data.metadata or {})
        if isinstance(metadata.get("notes"), str):
            metadata["notes"] = sanitize_text(metadata["notes"])

        try:
            booking = self.repo.create_booking(
                self.db,
                cal_booking_id=data.calBookingId,
                hapio_booking_id=data.hapioBookingId,
                service_id=data.serviceId,
                service_name=data.serviceName,
                client_name=sanitize_text(data.clientName),
                client_email=data.clientEmail.strip().lower(),
                client_phone=data.clientPhone,
                booking_date=data.bookingDate,
                amount=data.amount,
                deposit_amount=data.depositAmount,
                final_amount=data.finalAmount or data.amount,
                discount_code=data.discountCode,
                discount_amount=data.discountAmount,
                payment_status=data.paymentStatus or "pending",
                payment_intent_id=data.paymentIntentId,
                payment_method_id=data.paymentMethodId,
                booking_metadata=metadata or None,
            )
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate booking identifiers: {e.orig}")
            raise HTTPException(status_code=409, detail="Booking with this identifier already exists") from e

        logger.info(f"✅ Booking {booking.id} created for {booking.client_email}")
        return BookingCreateResponse(
            booking=BookingSummary(
                id=booking.id,
                calBookingId=booking.cal_booking_id,
                hapioBookingId=booking.hapio_booking_id,
                serviceId=booking.service_id,
                serviceName=booking.service_name,
                clientEmail=booking.client_email,
                paymentStatus=booking.payment_status,
                createdAt=booking.created_at,
            )
        )

    async def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> CancelBookingResponse:
        """Mark cancelled and release the provider booking; refunds stay with the studio"""
        booking = self.repo.get_by_any_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.payment_status == "cancelled":
            raise HTTPException(status_code=400, detail="Booking is already cancelled")

        released = False
        try:
            if booking.hapio_booking_id:
                await self.hapio.cancel_booking(booking.hapio_booking_id)
                released = True
            elif booking.cal_booking_id:
                await self.cal.cancel_booking(booking.cal_booking_id, reason)
                released = True
        except (HapioError, CalApiError) as e:
            logger.error(f"❌ Provider cancellation failed for booking {booking.id}: {e}")
            raise HTTPException(
                status_code=e.status_code if e.status_code >= 400 else 502,
                detail={"error": "Failed to cancel booking with the scheduling provider", "details": e.details},
            ) from e

        metadata = {
            **(booking.booking_metadata or {}),
            "cancellation": {
                "reason": sanitize_text(reason),
                "cancelledAt": _iso(datetime.now(timezone.utc)),
            },
        }
        self.repo.update_booking(self.db, booking, payment_status="cancelled", booking_metadata=metadata)
        logger.info(f"🗑️ Booking {booking.id} cancelled (provider released: {released})")

        return CancelBookingResponse(
            bookingId=booking.id, paymentStatus=booking.payment_status, providerReleased=released
        )

    # ------------------------------------------------------------------
    # Payment webhooks
    # ------------------------------------------------------------------

    def apply_payment_event(self, event_type: str, intent: Any) -> Optional[Booking]:
        """Reflect a payment_intent.* webhook on the matching booking"""
        intent_id = stripe_field(intent, "id")
        booking = self.repo.get_by_payment_intent(self.db, intent_id) if intent_id else None
        if not booking:
            logger.info(f"ℹ️ No booking for payment intent {intent_id} ({event_type}), ignoring")
            return None

        if booking.payment_status == "cancelled":
            return booking

        if event_type == "payment_intent.succeeded":
            status = payment_status_for(booking.payment_type or "full", "succeeded")
        elif event_type == "payment_intent.payment_failed":
            status = "failed"
        else:
            return booking

        logger.info(f"💳 Booking {booking.id} payment {booking.payment_status} -> {status}")
        return self.repo.update_booking(self.db, booking, payment_status=status)
