"""Catalog repository - admin reads and writes on the services table"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import Service


class CatalogRepository:
    """Repository for Service database operations"""

    @staticmethod
    def list_page(db: Session, page: int, per_page: int) -> tuple[list[Service], int]:
        total = db.query(Service).count()
        services = (
            db.query(Service)
            .order_by(Service.display_order.asc(), Service.created_at.desc(), Service.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return services, total

    @staticmethod
    def get_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Service).filter(Service.slug == slug)
        if exclude_id is not None:
            query = query.filter(Service.id != exclude_id)
        return db.query(query.exists()).scalar()

    @staticmethod
    def create(db: Session, values: dict[str, Any]) -> Service:
        service = Service(**values)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update(db: Session, service: Service, changes: dict[str, Any]) -> Service:
        for field, value in changes.items():
            setattr(service, field, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()

    @staticmethod
    def set_display_orders(db: Session, orders: dict[int, int]) -> int:
        """Returns how many services were updated; unknown ids are skipped"""
        services = db.query(Service).filter(Service.id.in_(list(orders))).all()
        for service in services:
            service.display_order = orders[service.id]
        db.commit()
        return len(services)
