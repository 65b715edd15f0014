from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from .shared.validators import is_valid_email, is_valid_phone


class ServiceResponse(BaseModel):
    id: int
    slug: str
    name: str
    category: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    duration_display: Optional[str] = None
    price: str
    featured: bool = False
    best_seller: bool = False
    enabled: bool = True
    display_order: int = 0
    cal_event_type_id: Optional[int] = None
    cal_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Cal.com availability and reservations


class AvailabilitySlot(BaseModel):
    slot: str
    duration: Optional[int] = None
    attendeeTimezone: Optional[str] = None


class AvailabilityMeta(BaseModel):
    fetchedAt: str
    startTime: str
    endTime: str
    timezone: str
    rateLimitRemaining: Optional[int] = None
    source: str = "cal.com"


class AvailabilityResponse(BaseModel):
    slug: str
    eventTypeId: int
    title: str
    duration: Optional[int] = None
    availability: list[AvailabilitySlot]
    meta: AvailabilityMeta


class ReserveSlotRequest(BaseModel):
    eventTypeId: Optional[int] = None
    slotStart: Optional[str] = None
    startTime: Optional[str] = None  # accepted alias for slotStart
    slotDuration: Optional[int] = None
    reservationDuration: Optional[int] = None
    timeZone: Optional[str] = None


class ReservationOut(BaseModel):
    id: str
    expiresAt: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    timezone: Optional[str] = None
    raw: Optional[dict[str, Any]] = None


class ReserveSlotResponse(BaseModel):
    success: bool = True
    reservation: ReservationOut


class ReleaseReservationResponse(BaseModel):
    success: bool = True
    reservationId: str


class VerifyReservationResponse(BaseModel):
    valid: bool
    reservation: Optional[ReservationOut] = None


# Email capture


class SubscribeRequest(BaseModel):
    firstName: str
    lastName: str
    email: str
    phone: str
    birthday: Optional[str] = None
    address: Optional[str] = None
    signupSource: Optional[str] = None

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Enter first name")
        return v.strip()

    @field_validator("lastName")
    @classmethod
    def validate_last_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Enter last name")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if not is_valid_email(v):
            raise ValueError("Enter a valid email")
        return v.strip().lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if not is_valid_phone(v):
            raise ValueError("Enter a valid phone number")
        return v


class SubscribeResponse(BaseModel):
    success: bool = True
    message: str


# Admin


class AdminLoginRequest(BaseModel):
    password: str


class AdminSessionResponse(BaseModel):
    authenticated: bool
