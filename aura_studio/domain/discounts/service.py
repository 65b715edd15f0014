"""Discount service - admin management of codes linked to Stripe coupons"""

import logging
import secrets
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import DiscountCode
from ...services.stripe_service import StripeService, stripe_field
from ...shared.validators import normalize_is_active
from .repository import DiscountRepository
from .schemas import (
    DiscountCodeCreate,
    DiscountCodeGroups,
    DiscountCodeResponse,
    DiscountCodeUpdate,
    GenerateCodeRequest,
)

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GENERATED_CODE_LENGTH = 8
GENERATE_ATTEMPTS = 5

DUPLICATE_CODE_MESSAGE = "Discount code already exists"


def generate_code(prefix: Optional[str] = None) -> str:
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(GENERATED_CODE_LENGTH))
    return f"{prefix}{suffix}" if prefix else suffix


def to_response(discount_code: DiscountCode) -> DiscountCodeResponse:
    return DiscountCodeResponse(
        id=discount_code.id,
        code=discount_code.code,
        stripeCouponId=discount_code.stripe_coupon_id,
        isActive=normalize_is_active(discount_code.is_active),
        createdAt=discount_code.created_at,
    )


class DiscountService:
    """Business logic for the admin discount code screen"""

    def __init__(self, db: Session, stripe_service: StripeService):
        self.db = db
        self.stripe = stripe_service
        self.repo = DiscountRepository()

    async def _require_coupon(self, coupon_id: str) -> None:
        try:
            coupon = await self.stripe.retrieve_coupon(coupon_id)
        except stripe.InvalidRequestError as e:
            logger.warning(f"🚫 Stripe coupon {coupon_id} not found: {e}")
            raise HTTPException(status_code=400, detail="Stripe coupon not found") from e
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe coupon lookup failed for {coupon_id}: {e}")
            raise HTTPException(status_code=500, detail="Error validating Stripe coupon") from e

        if not stripe_field(coupon, "valid", True):
            logger.warning(f"⚠️ Linking discount code to expired Stripe coupon {coupon_id}")

    def _create(self, code: str, coupon_id: str, is_active: bool) -> DiscountCode:
        try:
            return self.repo.create(self.db, code, coupon_id, is_active)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_CODE_MESSAGE) from e

    def list_codes(self) -> DiscountCodeGroups:
        codes = [to_response(c) for c in self.repo.list_all(self.db)]
        return DiscountCodeGroups(
            active=[c for c in codes if c.isActive],
            inactive=[c for c in codes if not c.isActive],
        )

    async def create_code(self, data: DiscountCodeCreate) -> DiscountCodeResponse:
        if self.repo.code_exists(self.db, data.code):
            raise HTTPException(status_code=409, detail=DUPLICATE_CODE_MESSAGE)
        await self._require_coupon(data.stripeCouponId)

        discount_code = self._create(data.code, data.stripeCouponId, data.isActive)
        logger.info(f"🏷️ Created discount code {discount_code.code} -> coupon {data.stripeCouponId}")
        return to_response(discount_code)

    async def generate_code(self, data: GenerateCodeRequest) -> DiscountCodeResponse:
        await self._require_coupon(data.stripeCouponId)

        for _ in range(GENERATE_ATTEMPTS):
            code = generate_code(data.prefix)
            if not self.repo.code_exists(self.db, code):
                break
        else:
            logger.error(f"❌ Could not find a free discount code after {GENERATE_ATTEMPTS} attempts")
            raise HTTPException(status_code=500, detail="Failed to generate a unique discount code")

        discount_code = self._create(code, data.stripeCouponId, data.isActive)
        logger.info(f"🎲 Generated discount code {code} -> coupon {data.stripeCouponId}")
        return to_response(discount_code)

    async def update_code(self, code_id: int, data: DiscountCodeUpdate) -> DiscountCodeResponse:
        discount_code = self.repo.get_by_id(self.db, code_id)
        if not discount_code:
            raise HTTPException(status_code=404, detail="Discount code not found")

        changes = {}
        if data.isActive is not None:
            changes["is_active"] = data.isActive
        if data.stripeCouponId is not None:
            await self._require_coupon(data.stripeCouponId)
            changes["stripe_coupon_id"] = data.stripeCouponId

        if changes:
            discount_code = self.repo.update(self.db, discount_code, changes)
            logger.info(f"✏️ Updated discount code {discount_code.code}: {sorted(changes)}")
        return to_response(discount_code)
