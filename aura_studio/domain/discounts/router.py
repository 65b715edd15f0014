"""Discount router - admin endpoints for discount codes"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...admin_auth import require_admin
from ...database import get_db
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import (
    DiscountCodeCreate,
    DiscountCodeGroups,
    DiscountCodeResponse,
    DiscountCodeUpdate,
    GenerateCodeRequest,
)
from .service import DiscountService

router = APIRouter(
    prefix="/admin/discount-codes", tags=["Admin Discount Codes"], dependencies=[Depends(require_admin)]
)


def get_discount_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> DiscountService:
    """Dependency injection for DiscountService"""
    return DiscountService(db, stripe_service)


@router.get("", response_model=DiscountCodeGroups)
async def list_discount_codes(service: DiscountService = Depends(get_discount_service)):
    return service.list_codes()


@router.post("", response_model=DiscountCodeResponse, status_code=201)
async def create_discount_code(data: DiscountCodeCreate, service: DiscountService = Depends(get_discount_service)):
    return await service.create_code(data)


@router.post("/generate", response_model=DiscountCodeResponse, status_code=201)
async def generate_discount_code(data: GenerateCodeRequest, service: DiscountService = Depends(get_discount_service)):
    """Create a random 8-character code (optionally prefixed) for a Stripe coupon"""
    return await service.generate_code(data)


@router.patch("/{code_id}", response_model=DiscountCodeResponse)
async def update_discount_code(
    code_id: int,
    data: DiscountCodeUpdate,
    service: DiscountService = Depends(get_discount_service),
):
    return await service.update_code(code_id, data)
