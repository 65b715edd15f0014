"""Discount domain schemas - admin discount code payloads"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator


def _strip_coupon_id(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Stripe coupon ID is required")
    return v


def _is_code_text(v: str) -> bool:
    return all(c.isalnum() or c in "_-" for c in v)


CouponId = Annotated[str, AfterValidator(_strip_coupon_id)]


class DiscountCodeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    stripeCouponId: CouponId
    isActive: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v or not _is_code_text(v):
            raise ValueError("Code may only contain letters, numbers, dashes and underscores")
        return v


class GenerateCodeRequest(BaseModel):
    stripeCouponId: CouponId
    prefix: Optional[str] = Field(None, max_length=20)
    isActive: bool = True

    @field_validator("prefix")
    @classmethod
    def normalize_prefix(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        if v and not _is_code_text(v):
            raise ValueError("Prefix may only contain letters, numbers, dashes and underscores")
        return v or None


class DiscountCodeUpdate(BaseModel):
    isActive: Optional[bool] = None
    stripeCouponId: Optional[CouponId] = None


class DiscountCodeResponse(BaseModel):
    id: int
    code: str
    stripeCouponId: str
    isActive: bool
    createdAt: Optional[datetime] = None


class DiscountCodeGroups(BaseModel):
    active: list[DiscountCodeResponse]
    inactive: list[DiscountCodeResponse]
