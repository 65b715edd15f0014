from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from .database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True, index=True)
    summary = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    duration_display = Column(String(50), nullable=True)  # e.g. "60 min"
    price = Column(String(50), nullable=False)  # display string, e.g. "$150"
    featured = Column(Boolean, default=False, nullable=False)
    best_seller = Column(Boolean, default=False, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    cal_event_type_id = Column(Integer, nullable=True)
    cal_link = Column(String(500), nullable=True)  # optional external calendar link
    buffer_before_minutes = Column(Integer, default=0, nullable=False)
    buffer_after_minutes = Column(Integer, default=0, nullable=False)
    hapio_service_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    cal_booking_id = Column(String(255), unique=True, nullable=True)
    hapio_booking_id = Column(String(255), unique=True, nullable=True)
    service_id = Column(String(255), nullable=False)
    service_name = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=True)
    client_email = Column(String(255), nullable=True, index=True)
    client_phone = Column(String(50), nullable=True)
    booking_date = Column(DateTime(timezone=True), nullable=True)
    amount = Column(Float, nullable=False)  # amount charged today
    deposit_amount = Column(Float, nullable=True)
    final_amount = Column(Float, nullable=True)  # post-discount service total
    discount_code = Column(String(100), nullable=True)
    discount_amount = Column(Float, nullable=True)
    payment_type = Column(String(20), default="full", nullable=False)  # full, deposit
    # pending, processing, authorized, paid, deposit_paid, failed, cancelled
    payment_status = Column(String(50), default="pending", nullable=False)
    payment_intent_id = Column(String(255), unique=True, nullable=True, index=True)
    payment_method_id = Column(String(255), nullable=True)
    # bookingToken, tokenExpiresAt, paymentDetails, selectedSlot, ...
    booking_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class DiscountCode(Base):
    __tablename__ = "discount_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(100), unique=True, index=True, nullable=False)  # stored upper-case
    stripe_coupon_id = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=True)  # NULL is treated as inactive
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lower-case
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    used_welcome_offer = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
