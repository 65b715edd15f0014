"""Payment service - discount validation and payment intent creation"""

import logging
from typing import Any, Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEPOSIT_PERCENT
from ...services.stripe_service import StripeService, stripe_field
from ...shared.validators import extract_numeric_price, normalize_is_active, split_full_name
from .repository import PaymentRepository
from .schemas import (
    CouponSummary,
    CreateIntentRequest,
    CreateIntentResponse,
    DiscountValidationResponse,
    ValidateDiscountRequest,
)

logger = logging.getLogger(__name__)

WELCOME_CODE = "WELCOME15"
WELCOME_MAX_DISCOUNT = 30.0


def _invalid(message: str, status_code: int = 400) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": message, "valid": False})


def round_cents(value: float) -> float:
    return round(value + 1e-9, 2)


def calculate_discount(amount: float, coupon: Any, code: str) -> tuple[float, float]:
    """
    Returns (discount_amount, final_amount) for a Stripe coupon.

    Percent coupons honor metadata.max_discount (WELCOME15 is capped at $30
    when no cap is set). Amount coupons are in cents and never push the
    total below zero.
    """
    discount = 0.0
    final = amount

    percent_off = stripe_field(coupon, "percent_off")
    amount_off = stripe_field(coupon, "amount_off")

    if percent_off:
        discount = amount * float(percent_off) / 100
        max_discount = 0.0
        raw_cap = stripe_field(stripe_field(coupon, "metadata"), "max_discount")
        if raw_cap:
            max_discount = float(raw_cap)
        elif code.upper() == WELCOME_CODE:
            max_discount = WELCOME_MAX_DISCOUNT
        if max_discount > 0 and discount > max_discount:
            discount = max_discount
        final = amount - discount
    elif amount_off:
        discount = amount_off / 100
        final = max(0.0, amount - discount)

    return round_cents(discount), round_cents(final)


def calculate_payment_amounts(
    final_amount: float, payment_type: str, deposit_percent: int = DEPOSIT_PERCENT
) -> tuple[float, float]:
    """Returns (due_today, balance_due) for the post-discount total"""
    if payment_type == "deposit":
        due_today = round_cents(final_amount * deposit_percent / 100)
    else:
        due_today = round_cents(final_amount)
    return due_today, round_cents(max(0.0, final_amount - due_today))


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session, stripe_service: StripeService):
        self.db = db
        self.stripe = stripe_service
        self.repo = PaymentRepository()

    def _check_welcome_offer(self, email: Optional[str], name: Optional[str]) -> None:
        names = split_full_name(name)

        if email:
            customer = self.repo.get_customer_by_email(self.db, email)
            if customer:
                if customer.used_welcome_offer:
                    raise _invalid("This welcome offer has already been used")
                if names and self.repo.welcome_offer_used_by_name(
                    self.db, names[0], names[1], exclude_email=email
                ):
                    raise _invalid("This welcome offer has already been used by someone with this name")
            elif names and self.repo.welcome_offer_used_by_name(self.db, names[0], names[1]):
                raise _invalid("This welcome offer has already been used")
        elif names and self.repo.welcome_offer_used_by_name(self.db, names[0], names[1]):
            raise _invalid("This welcome offer has already been used by someone with this name")

    async def validate_discount(self, data: ValidateDiscountRequest) -> DiscountValidationResponse:
        if not data.code or not data.code.strip():
            raise HTTPException(status_code=400, detail="Discount code is required")
        if data.amount is None or data.amount <= 0:
            raise HTTPException(status_code=400, detail="Valid amount is required")

        code = data.code.strip().upper()
        logger.info(f"🏷️ Validating discount code {code} for ${data.amount:.2f}")

        if code == WELCOME_CODE:
            self._check_welcome_offer(data.customerEmail, data.customerName)

        discount_code = self.repo.get_discount_code(self.db, code)
        if not discount_code or not normalize_is_active(discount_code.is_active):
            logger.info(f"🚫 Discount code {code} not found or inactive")
            raise _invalid("Invalid discount code")

        try:
            coupon = await self.stripe.retrieve_coupon(discount_code.stripe_coupon_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe coupon lookup failed for {code}: {e}")
            raise _invalid("Error validating discount code", status_code=500) from e

        if not stripe_field(coupon, "valid", False):
            raise _invalid("Discount code is no longer valid")

        discount_amount, final_amount = calculate_discount(data.amount, coupon, code)
        amount_off = stripe_field(coupon, "amount_off")

        return DiscountValidationResponse(
            valid=True,
            code=code,
            discountAmount=discount_amount,
            originalAmount=data.amount,
            finalAmount=final_amount,
            coupon=CouponSummary(
                id=stripe_field(coupon, "id"),
                name=stripe_field(coupon, "name"),
                percent_off=stripe_field(coupon, "percent_off"),
                amount_off=amount_off / 100 if amount_off else None,
            ),
        )

    async def create_intent(self, data: CreateIntentRequest) -> CreateIntentResponse:
        """Price the service server-side and open a card payment intent for the amount due today"""
        service = self.repo.get_enabled_service(self.db, data.serviceId)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        original_amount = extract_numeric_price(service.price)
        if original_amount <= 0:
            logger.error(f"❌ Service {service.slug} has no usable price: {service.price!r}")
            raise HTTPException(status_code=400, detail="Service price unavailable")

        discount_code = None
        discount_amount = 0.0
        final_amount = original_amount
        if data.discountCode and data.discountCode.strip():
            validation = await self.validate_discount(
                ValidateDiscountRequest(
                    code=data.discountCode,
                    amount=original_amount,
                    customerEmail=data.customerEmail,
                    customerName=data.customerName,
                )
            )
            discount_code = validation.code
            discount_amount = validation.discountAmount
            final_amount = validation.finalAmount

        due_today, balance_due = calculate_payment_amounts(final_amount, data.paymentType)
        if due_today <= 0:
            raise HTTPException(status_code=400, detail="Amount due must be greater than zero")

        metadata = {
            "serviceId": service.slug,
            "serviceName": service.name,
            "paymentType": data.paymentType,
            "finalAmount": f"{final_amount:.2f}",
            "depositAmount": f"{due_today:.2f}",
            "balanceDue": f"{balance_due:.2f}",
            "discountCode": discount_code,
            "discountAmount": f"{discount_amount:.2f}",
            "depositPercent": str(DEPOSIT_PERCENT),
            "customerEmail": data.customerEmail,
            "customerName": data.customerName,
            "customerPhone": data.customerPhone,
            "slotStartTime": data.slotStartTime,
            "reservationId": data.reservationId,
        }

        intent = await self.stripe.create_payment_intent(
            due_today, metadata, receipt_email=data.customerEmail
        )

        return CreateIntentResponse(
            paymentIntentId=intent.id,
            clientSecret=intent.client_secret,
            amount=due_today,
            status=intent.status,
            paymentType=data.paymentType,
            originalAmount=original_amount,
            finalAmount=final_amount,
            discountAmount=discount_amount,
            depositAmount=due_today,
            balanceDue=balance_due,
            metadata={k: v for k, v in metadata.items() if v is not None},
        )
