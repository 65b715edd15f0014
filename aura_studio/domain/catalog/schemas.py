"""Catalog domain schemas - admin service editor payloads"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import ServiceResponse


class ServiceCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    duration_minutes: int = Field(..., ge=0)
    price: str = Field(..., min_length=1, max_length=50)
    category: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    duration_display: Optional[str] = None
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)
    featured: bool = False
    best_seller: bool = False
    enabled: bool = True
    display_order: int = 0
    cal_event_type_id: Optional[int] = None
    cal_link: Optional[str] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Slug is required")
        return v


class ServiceUpdate(BaseModel):
    """Only the fields present in the request body are applied"""

    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    duration_minutes: Optional[int] = Field(None, ge=0)
    price: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    duration_display: Optional[str] = None
    buffer_before_minutes: Optional[int] = Field(None, ge=0)
    buffer_after_minutes: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None
    best_seller: Optional[bool] = None
    enabled: Optional[bool] = None
    display_order: Optional[int] = None
    cal_event_type_id: Optional[int] = None
    cal_link: Optional[str] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not v:
            raise ValueError("Slug is required")
        return v


class AdminServiceResponse(ServiceResponse):
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    hapio_service_id: Optional[str] = None


class PageMeta(BaseModel):
    current_page: int
    per_page: int
    total: int
    last_page: int


class ServiceListResponse(BaseModel):
    data: list[AdminServiceResponse]
    meta: PageMeta


class ServiceOrder(BaseModel):
    id: int
    display_order: int


class ReorderRequest(BaseModel):
    services: list[ServiceOrder]


class ReorderResponse(BaseModel):
    success: bool = True
    updated: int


class SyncResponse(BaseModel):
    success: bool = True
    message: str
    hapio_service_id: str
    hapio_service: Optional[dict[str, Any]] = None
