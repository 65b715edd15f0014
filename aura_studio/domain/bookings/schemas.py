"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class SelectedSlot(BaseModel):
    startTime: Optional[str] = None
    eventTypeId: Optional[int] = None
    timezone: Optional[str] = None
    duration: Optional[int] = None
    label: Optional[str] = None


class CreateTokenRequest(BaseModel):
    paymentIntentId: Optional[str] = None
    selectedSlot: Optional[SelectedSlot] = None


class CreateTokenResponse(BaseModel):
    token: str
    expiresAt: str
    paymentIntentId: str
    paymentStatus: str


class BookingCreate(BaseModel):
    """Explicit booking insert; required fields are checked by the service for a 400"""

    calBookingId: Optional[str] = None
    hapioBookingId: Optional[str] = None
    serviceId: Optional[str] = None
    serviceName: Optional[str] = None
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    clientPhone: Optional[str] = None
    bookingDate: Optional[datetime] = None
    amount: Optional[float] = None
    depositAmount: Optional[float] = None
    finalAmount: Optional[float] = None
    discountCode: Optional[str] = None
    discountAmount: Optional[float] = None
    paymentStatus: Optional[str] = None
    paymentIntentId: Optional[str] = None
    paymentMethodId: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class BookingSummary(BaseModel):
    id: int
    calBookingId: Optional[str] = None
    hapioBookingId: Optional[str] = None
    serviceId: str
    serviceName: str
    clientEmail: Optional[str] = None
    paymentStatus: str
    createdAt: Optional[datetime] = None


class BookingCreateResponse(BaseModel):
    success: bool = True
    booking: BookingSummary


class VerifiedBooking(BaseModel):
    id: int
    serviceName: str
    serviceId: str
    calBookingId: Optional[str] = None
    hapioBookingId: Optional[str] = None
    paymentStatus: str
    paymentType: str
    paymentIntentId: Optional[str] = None
    expiresAt: Optional[str] = None
    selectedSlot: Optional[dict[str, Any]] = None


class VerifyTokenResponse(BaseModel):
    valid: bool
    expired: bool
    paymentValid: bool
    isBooked: bool
    booking: VerifiedBooking


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None


class CancelBookingResponse(BaseModel):
    success: bool = True
    bookingId: int
    paymentStatus: str
    providerReleased: bool
