"""Discount repository - admin reads and writes on discount_codes"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import DiscountCode


class DiscountRepository:
    """Repository for DiscountCode database operations"""

    @staticmethod
    def list_all(db: Session) -> list[DiscountCode]:
        return db.query(DiscountCode).order_by(DiscountCode.created_at.desc(), DiscountCode.id.desc()).all()

    @staticmethod
    def get_by_id(db: Session, code_id: int) -> Optional[DiscountCode]:
        return db.query(DiscountCode).filter(DiscountCode.id == code_id).first()

    @staticmethod
    def code_exists(db: Session, code: str) -> bool:
        return db.query(db.query(DiscountCode).filter(DiscountCode.code == code).exists()).scalar()

    @staticmethod
    def create(db: Session, code: str, stripe_coupon_id: str, is_active: bool) -> DiscountCode:
        discount_code = DiscountCode(code=code, stripe_coupon_id=stripe_coupon_id, is_active=is_active)
        db.add(discount_code)
        db.commit()
        db.refresh(discount_code)
        return discount_code

    @staticmethod
    def update(db: Session, discount_code: DiscountCode, changes: dict[str, Any]) -> DiscountCode:
        for field, value in changes.items():
            setattr(discount_code, field, value)
        db.commit()
        db.refresh(discount_code)
        return discount_code
