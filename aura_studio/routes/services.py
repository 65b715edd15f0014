"""Public service catalog"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Service
from ..schemas import ServiceResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])

ADD_ON_CATEGORY = "Add-on"


@router.get("", response_model=list[ServiceResponse])
async def list_services(category: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Enabled services, add-ons excluded, in display order"""
    query = db.query(Service).filter(
        Service.enabled.is_(True),
        or_(Service.category.is_(None), Service.category != ADD_ON_CATEGORY),
    )
    if category:
        query = query.filter(Service.category == category)

    services = query.order_by(Service.display_order.asc(), Service.created_at.asc()).all()
    logger.debug(f"📋 Listing {len(services)} services (category={category})")
    return services


@router.get("/{slug}", response_model=ServiceResponse)
async def get_service(slug: str, db: Session = Depends(get_db)):
    service = db.query(Service).filter(Service.slug == slug, Service.enabled.is_(True)).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service
