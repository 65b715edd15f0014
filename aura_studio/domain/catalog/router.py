"""Catalog router - admin endpoints for the service catalog"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...admin_auth import require_admin
from ...database import get_db
from ...routes.admin_hapio import get_hapio_service
from ...services.hapio_service import HapioService
from .schemas import (
    AdminServiceResponse,
    ReorderRequest,
    ReorderResponse,
    ServiceCreate,
    ServiceListResponse,
    ServiceUpdate,
    SyncResponse,
)
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/services", tags=["Admin Services"], dependencies=[Depends(require_admin)])


def get_catalog_service(
    db: Session = Depends(get_db),
    hapio: HapioService = Depends(get_hapio_service),
) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db, hapio)


@router.get("", response_model=ServiceListResponse)
async def list_services(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    service: CatalogService = Depends(get_catalog_service),
):
    """Every service, enabled or not, in display order"""
    return service.list_services(page, per_page)


@router.post("", response_model=AdminServiceResponse, status_code=201)
async def create_service(data: ServiceCreate, service: CatalogService = Depends(get_catalog_service)):
    return service.create_service(data)


@router.post("/reorder", response_model=ReorderResponse)
async def reorder_services(data: ReorderRequest, service: CatalogService = Depends(get_catalog_service)):
    return service.reorder(data)


@router.get("/{service_id}", response_model=AdminServiceResponse)
async def get_service(service_id: int, service: CatalogService = Depends(get_catalog_service)):
    return service.get_service(service_id)


@router.patch("/{service_id}", response_model=AdminServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    service: CatalogService = Depends(get_catalog_service),
):
    return service.update_service(service_id, data)


@router.delete("/{service_id}")
async def delete_service(service_id: int, service: CatalogService = Depends(get_catalog_service)):
    service.delete_service(service_id)
    return {"success": True}


@router.post("/{service_id}/sync", response_model=SyncResponse)
async def sync_service(service_id: int, service: CatalogService = Depends(get_catalog_service)):
    return await service.sync_to_hapio(service_id)
