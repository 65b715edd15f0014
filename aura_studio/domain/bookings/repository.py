"""Booking repository - Database operations for bookings and customers"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Booking, Customer


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_payment_intent(db: Session, payment_intent_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.payment_intent_id == payment_intent_id).first()

    @staticmethod
    def get_by_any_id(db: Session, booking_id: str) -> Optional[Booking]:
        """Look up by our numeric id or by a provider booking id"""
        filters = [Booking.hapio_booking_id == booking_id, Booking.cal_booking_id == booking_id]
        if booking_id.isdigit():
            filters.append(Booking.id == int(booking_id))
        return db.query(Booking).filter(or_(*filters)).first()

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update_booking(db: Session, booking: Booking, **updates) -> Booking:
        for key, value in updates.items():
            setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def upsert_customer(
        db: Session,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        used_welcome_offer: bool = False,
    ) -> Customer:
        """Create or refresh a customer; the welcome offer flag is never cleared"""
        email = email.strip().lower()
        customer = db.query(Customer).filter(func.lower(Customer.email) == email).first()
        if not customer:
            customer = Customer(email=email)
            db.add(customer)

        customer.first_name = first_name or customer.first_name
        customer.last_name = last_name or customer.last_name
        customer.phone = phone or customer.phone
        customer.used_welcome_offer = bool(customer.used_welcome_offer) or used_welcome_offer

        db.commit()
        db.refresh(customer)
        return customer
