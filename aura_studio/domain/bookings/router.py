"""Booking router - FastAPI endpoints for booking tokens and records"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...services.cal_service import cal_service
from ...services.hapio_service import hapio_service
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import (
    BookingCreate,
    BookingCreateResponse,
    CancelBookingRequest,
    CancelBookingResponse,
    CreateTokenRequest,
    CreateTokenResponse,
    VerifyTokenResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

token_rate_limit = create_rate_limiter(limit=10, window_seconds=60, key_prefix="booking_token")


def get_booking_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, stripe_service, cal_service, hapio_service)


@router.post("/create-token", response_model=CreateTokenResponse)
async def create_booking_token(
    data: CreateTokenRequest,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(token_rate_limit),
):
    """Issue the booking token that authorizes the verification redirect"""
    return await service.create_token(data)


@router.get("/verify-token", response_model=VerifyTokenResponse)
async def verify_booking_token(
    token: Optional[str] = Query(None),
    paymentIntentId: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    return await service.verify_token(token=token, payment_intent_id=paymentIntentId)


@router.post("/create", response_model=BookingCreateResponse)
async def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    return service.create_booking(data)


@router.post("/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: str,
    data: Optional[CancelBookingRequest] = None,
    service: BookingService = Depends(get_booking_service),
):
    return await service.cancel_booking(booking_id, data.reason if data else None)
