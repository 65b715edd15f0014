"""Payment router - discount validation and payment intents"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import (
    CreateIntentRequest,
    CreateIntentResponse,
    DiscountValidationResponse,
    ValidateDiscountRequest,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

discount_rate_limit = create_rate_limiter(limit=20, window_seconds=60, key_prefix="validate_discount")
intent_rate_limit = create_rate_limiter(limit=10, window_seconds=60, key_prefix="create_intent")


def get_payment_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, stripe_service)


@router.post("/validate-discount", response_model=DiscountValidationResponse)
async def validate_discount(
    data: ValidateDiscountRequest,
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(discount_rate_limit),
):
    return await service.validate_discount(data)


@router.post("/create-intent", response_model=CreateIntentResponse)
async def create_payment_intent(
    data: CreateIntentRequest,
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(intent_rate_limit),
):
    """Create a payment intent for the amount due today (full price or deposit)"""
    return await service.create_intent(data)
