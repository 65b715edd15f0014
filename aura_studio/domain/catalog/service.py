"""Catalog service - admin CRUD over the services table and Hapio sync"""

import logging
import math
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Service
from ...services.hapio_service import HapioError, HapioService
from ...shared.validators import extract_numeric_price
from ..scheduling import InvalidFieldsError, to_hapio_service_payload
from .repository import CatalogRepository
from .schemas import (
    AdminServiceResponse,
    PageMeta,
    ReorderRequest,
    ReorderResponse,
    ServiceCreate,
    ServiceListResponse,
    ServiceUpdate,
    SyncResponse,
)

logger = logging.getLogger(__name__)

# Columns that cannot be cleared through PATCH
NOT_NULL_FIELDS = {
    "slug",
    "name",
    "price",
    "featured",
    "best_seller",
    "enabled",
    "display_order",
    "buffer_before_minutes",
    "buffer_after_minutes",
}

SLUG_TAKEN_MESSAGE = "Service with this slug already exists"
SYNC_FAILED_MESSAGE = "Failed to sync service to Hapio"


def hapio_service_payload(service: Service) -> dict[str, Any]:
    """The Hapio representation of a catalog row; minute fields become ISO-8601 durations"""
    return to_hapio_service_payload(
        {
            "name": service.name,
            "type": "service",
            "duration_minutes": service.duration_minutes,
            "buffer_before_minutes": service.buffer_before_minutes or None,
            "buffer_after_minutes": service.buffer_after_minutes or None,
            "enabled": service.enabled is not False,
            "metadata": {
                "slug": service.slug,
                "category": service.category,
                "duration_display": service.duration_display,
                "price": extract_numeric_price(service.price),
            },
        }
    )


class CatalogService:
    """Business logic for the admin service editor"""

    def __init__(self, db: Session, hapio: HapioService):
        self.db = db
        self.hapio = hapio
        self.repo = CatalogRepository()

    def _get_or_404(self, service_id: int) -> Service:
        service = self.repo.get_by_id(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def list_services(self, page: int, per_page: int) -> ServiceListResponse:
        services, total = self.repo.list_page(self.db, page, per_page)
        return ServiceListResponse(
            data=[AdminServiceResponse.model_validate(s) for s in services],
            meta=PageMeta(
                current_page=page,
                per_page=per_page,
                total=total,
                last_page=math.ceil(total / per_page),
            ),
        )

    def get_service(self, service_id: int) -> AdminServiceResponse:
        return AdminServiceResponse.model_validate(self._get_or_404(service_id))

    def create_service(self, data: ServiceCreate) -> AdminServiceResponse:
        if self.repo.slug_taken(self.db, data.slug):
            raise HTTPException(status_code=409, detail=SLUG_TAKEN_MESSAGE)

        service = self.repo.create(self.db, data.model_dump())
        logger.info(f"✅ Created service {service.slug} (id={service.id})")
        return AdminServiceResponse.model_validate(service)

    def update_service(self, service_id: int, data: ServiceUpdate) -> AdminServiceResponse:
        service = self._get_or_404(service_id)
        changes = data.model_dump(exclude_unset=True)

        cleared = sorted(f for f, v in changes.items() if v is None and f in NOT_NULL_FIELDS)
        if cleared:
            raise HTTPException(
                status_code=400,
                detail={"error": f"{cleared[0]} cannot be empty", "details": {"fields": cleared}},
            )

        if "slug" in changes and self.repo.slug_taken(self.db, changes["slug"], exclude_id=service.id):
            raise HTTPException(status_code=409, detail=SLUG_TAKEN_MESSAGE)

        service = self.repo.update(self.db, service, changes)
        logger.info(f"✏️ Updated service {service.slug}: {sorted(changes)}")
        return AdminServiceResponse.model_validate(service)

    def delete_service(self, service_id: int) -> None:
        service = self._get_or_404(service_id)
        self.repo.delete(self.db, service)
        logger.info(f"🗑️ Deleted service {service.slug} (id={service_id})")

    def reorder(self, data: ReorderRequest) -> ReorderResponse:
        orders = {item.id: item.display_order for item in data.services}
        updated = self.repo.set_display_orders(self.db, orders) if orders else 0
        if updated < len(orders):
            logger.warning(f"⚠️ Reorder skipped {len(orders) - updated} unknown service id(s)")
        return ReorderResponse(updated=updated)

    async def sync_to_hapio(self, service_id: int) -> SyncResponse:
        """Create the service in Hapio on first sync, update it afterwards"""
        service = self._get_or_404(service_id)

        try:
            payload = hapio_service_payload(service)
        except InvalidFieldsError as e:
            raise HTTPException(
                status_code=422, detail={"error": str(e), "details": {"errors": e.errors}}
            ) from e

        existing_id = service.hapio_service_id
        try:
            if existing_id:
                logger.info(f"🔄 Updating Hapio service {existing_id} for {service.slug}")
                hapio_service = await self.hapio.update_service(existing_id, payload)
            else:
                hapio_service = await self.hapio.create_service(payload)
        except HapioError as e:
            logger.error(f"❌ {SYNC_FAILED_MESSAGE} for {service.slug}: {e} ({e.status_code})")
            raise HTTPException(
                status_code=e.status_code or 500,
                detail={"error": SYNC_FAILED_MESSAGE, "details": e.details or str(e)},
            ) from e

        hapio_id = existing_id or str((hapio_service or {}).get("id") or "")
        if not hapio_id:
            logger.error(f"❌ Hapio returned no id for service {service.slug}: {hapio_service}")
            raise HTTPException(
                status_code=502,
                detail={"error": SYNC_FAILED_MESSAGE, "details": "Hapio response had no service id"},
            )

        if not existing_id:
            self.repo.update(self.db, service, {"hapio_service_id": hapio_id})
            logger.info(f"✅ Created Hapio service {hapio_id} for {service.slug}")

        return SyncResponse(
            message="Service synced to Hapio successfully"
            if existing_id
            else "Service created in Hapio and synced successfully",
            hapio_service_id=hapio_id,
            hapio_service=hapio_service if isinstance(hapio_service, dict) else None,
        )
