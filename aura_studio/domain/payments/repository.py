"""Payment repository - discount code and customer lookups"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Customer, DiscountCode, Service


class PaymentRepository:
    """Repository for payment-related database reads"""

    @staticmethod
    def get_discount_code(db: Session, code: str) -> Optional[DiscountCode]:
        return db.query(DiscountCode).filter(DiscountCode.code == code.upper()).first()

    @staticmethod
    def get_customer_by_email(db: Session, email: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .filter(func.lower(Customer.email) == email.strip().lower())
            .first()
        )

    @staticmethod
    def welcome_offer_used_by_name(
        db: Session, first_name: str, last_name: str, exclude_email: Optional[str] = None
    ) -> bool:
        """Has someone with this first + last name already redeemed the welcome offer?"""
        query = db.query(Customer).filter(
            func.lower(Customer.first_name) == first_name.lower(),
            func.lower(Customer.last_name) == last_name.lower(),
            Customer.used_welcome_offer.is_(True),
        )
        if exclude_email:
            query = query.filter(func.lower(Customer.email) != exclude_email.strip().lower())
        return db.query(query.exists()).scalar()

    @staticmethod
    def get_enabled_service(db: Session, slug: str) -> Optional[Service]:
        return db.query(Service).filter(Service.slug == slug, Service.enabled.is_(True)).first()
