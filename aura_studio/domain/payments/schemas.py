"""Payment domain schemas - Pydantic models for validation"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator


class ValidateDiscountRequest(BaseModel):
    """Messages for missing fields are produced by the service, so everything is optional here"""

    code: Optional[str] = None
    amount: Optional[float] = None
    customerEmail: Optional[str] = None
    customerName: Optional[str] = None


class CouponSummary(BaseModel):
    id: str
    name: Optional[str] = None
    percent_off: Optional[float] = None
    amount_off: Optional[float] = None  # dollars


class DiscountValidationResponse(BaseModel):
    valid: bool
    code: str
    discountAmount: float
    originalAmount: float
    finalAmount: float
    coupon: Optional[CouponSummary] = None


class CreateIntentRequest(BaseModel):
    serviceId: str  # service slug
    paymentType: Literal["full", "deposit"] = "full"
    discountCode: Optional[str] = None
    customerEmail: Optional[str] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    slotStartTime: Optional[str] = None
    reservationId: Optional[str] = None

    @field_validator("serviceId")
    @classmethod
    def validate_service_id(cls, v):
        if not v or not v.strip():
            raise ValueError("serviceId is required")
        return v.strip()


class CreateIntentResponse(BaseModel):
    paymentIntentId: str
    clientSecret: str
    amount: float  # due today
    status: str
    paymentType: str
    originalAmount: float
    finalAmount: float
    discountAmount: float
    depositAmount: float
    balanceDue: float
    metadata: dict[str, Any] = {}
