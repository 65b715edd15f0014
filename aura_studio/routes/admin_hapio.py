"""
Admin Hapio Routes
Proxy CRUD for the scheduling editors in the admin dashboard. All routes
require the admin session cookie.
"""

import logging
from typing import Any, Awaitable, Literal, Optional, TypeVar

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ..admin_auth import require_admin
from ..domain.scheduling import (
    InvalidFieldsError,
    normalize_block_payload,
    to_hapio_service_payload,
    validate_recurring_block,
    with_duration_minutes,
    with_duration_minutes_list,
)
from ..services.hapio_service import HapioError, HapioService, HapioValidationError, hapio_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/hapio", tags=["Admin Hapio"], dependencies=[Depends(require_admin)])

T = TypeVar("T")

ParentType = Literal["project", "location", "resource"]
BLOCKS_PAGE_SIZE = 100


def get_hapio_service() -> HapioService:
    return hapio_service


async def proxy(call: Awaitable[T], failure_message: str) -> T:
    """Await a Hapio call, translating provider failures into JSON errors"""
    try:
        return await call
    except HapioValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": str(e), "details": {"fieldErrors": e.get_field_errors(), "errors": e.errors}},
        ) from e
    except HapioError as e:
        logger.error(f"❌ {failure_message}: {e} ({e.status_code})")
        raise HTTPException(
            status_code=e.status_code or 500,
            detail={"error": str(e) or failure_message, "details": e.details},
        ) from e


def reject_field_errors(errors: dict[str, list[str]], what: str = "recurring schedule block") -> None:
    if not errors:
        return
    first = next(iter(errors.values()))[0]
    logger.warning(f"⚠️ Rejected {what}: {errors}")
    raise HTTPException(
        status_code=422,
        detail={
            "error": first,
            "details": {
                "fieldErrors": [{"field": f, "message": m} for f, msgs in errors.items() for m in msgs],
                "errors": errors,
            },
        },
    )


def _block_body(payload: dict[str, Any]) -> dict[str, Any]:
    try:
        return normalize_block_payload(payload)
    except InvalidFieldsError as e:
        reject_field_errors(e.errors)
        raise


def _service_body(payload: dict[str, Any]) -> dict[str, Any]:
    try:
        return to_hapio_service_payload(payload)
    except InvalidFieldsError as e:
        reject_field_errors(e.errors, what="Hapio service")
        raise


# ============================================================================
# PROJECT / LOCATIONS / RESOURCES / SERVICES
# ============================================================================


@router.get("/project")
async def get_project(hapio: HapioService = Depends(get_hapio_service)):
    return await proxy(hapio.get_project(), "Failed to retrieve project")


@router.get("/locations")
async def list_locations(
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    return await proxy(hapio.list_locations(page, per_page), "Failed to retrieve locations")


@router.post("/locations")
async def create_location(payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)):
    location = await proxy(hapio.create_location(payload), "Failed to create location")
    return {"location": location}


@router.get("/locations/{location_id}")
async def get_location(location_id: str, hapio: HapioService = Depends(get_hapio_service)):
    location = await proxy(hapio.get_location(location_id), "Failed to retrieve location")
    return {"location": location}


@router.patch("/locations/{location_id}")
async def update_location(
    location_id: str, payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)
):
    location = await proxy(hapio.update_location(location_id, payload), "Failed to update location")
    return {"location": location}


@router.delete("/locations/{location_id}")
async def delete_location(location_id: str, hapio: HapioService = Depends(get_hapio_service)):
    await proxy(hapio.delete_location(location_id), "Failed to delete location")
    return {"success": True}


@router.get("/resources")
async def list_resources(
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    return await proxy(hapio.list_resources(page, per_page), "Failed to retrieve resources")


@router.post("/resources")
async def create_resource(payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)):
    resource = await proxy(hapio.create_resource(payload), "Failed to create resource")
    return {"resource": resource}


@router.get("/resources/{resource_id}")
async def get_resource(resource_id: str, hapio: HapioService = Depends(get_hapio_service)):
    resource = await proxy(hapio.get_resource(resource_id), "Failed to retrieve resource")
    return {"resource": resource}


@router.patch("/resources/{resource_id}")
async def update_resource(
    resource_id: str, payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)
):
    resource = await proxy(hapio.update_resource(resource_id, payload), "Failed to update resource")
    return {"resource": resource}


@router.delete("/resources/{resource_id}")
async def delete_resource(resource_id: str, hapio: HapioService = Depends(get_hapio_service)):
    await proxy(hapio.delete_resource(resource_id), "Failed to delete resource")
    return {"success": True}


@router.get("/services")
async def list_services(
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    services = await proxy(hapio.list_services(page, per_page), "Failed to retrieve services")
    return with_duration_minutes_list(services)


@router.post("/services")
async def create_service(payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)):
    service = await proxy(hapio.create_service(_service_body(payload)), "Failed to create service")
    return {"service": with_duration_minutes(service)}


@router.get("/services/{service_id}")
async def get_service(service_id: str, hapio: HapioService = Depends(get_hapio_service)):
    service = await proxy(hapio.get_service(service_id), "Failed to retrieve service")
    return {"service": with_duration_minutes(service)}


@router.patch("/services/{service_id}")
async def update_service(
    service_id: str, payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)
):
    service = await proxy(hapio.update_service(service_id, _service_body(payload)), "Failed to update service")
    return {"service": with_duration_minutes(service)}


@router.delete("/services/{service_id}")
async def delete_service(service_id: str, hapio: HapioService = Depends(get_hapio_service)):
    await proxy(hapio.delete_service(service_id), "Failed to delete service")
    return {"success": True}


# ============================================================================
# RECURRING SCHEDULES
# ============================================================================


@router.get("/recurring-schedules")
async def list_recurring_schedules(
    parent_type: ParentType = Query("resource"),
    parent_id: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    return await proxy(
        hapio.list_recurring_schedules(parent_type, parent_id, page, per_page),
        "Failed to retrieve recurring schedules",
    )


@router.post("/recurring-schedules")
async def create_recurring_schedule(
    payload: dict[str, Any] = Body(...),
    parent_type: ParentType = Query("resource"),
    parent_id: Optional[str] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    schedule = await proxy(
        hapio.create_recurring_schedule(parent_type, parent_id, payload),
        "Failed to create recurring schedule",
    )
    return {"schedule": schedule}


@router.patch("/recurring-schedules/{schedule_id}")
async def update_recurring_schedule(
    schedule_id: str,
    payload: dict[str, Any] = Body(...),
    parent_type: ParentType = Query("resource"),
    parent_id: Optional[str] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    schedule = await proxy(
        hapio.update_recurring_schedule(parent_type, parent_id, schedule_id, payload),
        "Failed to update recurring schedule",
    )
    return {"schedule": schedule}


@router.delete("/recurring-schedules/{schedule_id}")
async def delete_recurring_schedule(
    schedule_id: str,
    parent_type: ParentType = Query("resource"),
    parent_id: Optional[str] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    await proxy(
        hapio.delete_recurring_schedule(parent_type, parent_id, schedule_id),
        "Failed to delete recurring schedule",
    )
    return {"success": True}


# ============================================================================
# RECURRING SCHEDULE BLOCKS (validated for format and same-day overlaps)
# ============================================================================


async def _existing_blocks(hapio: HapioService, resource_id: str, recurring_schedule_id: str) -> list[dict]:
    response = await proxy(
        hapio.list_recurring_schedule_blocks(resource_id, recurring_schedule_id, per_page=BLOCKS_PAGE_SIZE),
        "Failed to retrieve recurring schedule blocks",
    )
    if isinstance(response, dict):
        return response.get("data") or []
    return response or []


@router.get("/resources/{resource_id}/recurring-schedule-blocks")
async def list_recurring_schedule_blocks(
    resource_id: str,
    recurring_schedule_id: str = Query(...),
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    return await proxy(
        hapio.list_recurring_schedule_blocks(resource_id, recurring_schedule_id, page, per_page),
        "Failed to retrieve recurring schedule blocks",
    )


@router.post("/resources/{resource_id}/recurring-schedule-blocks")
async def create_recurring_schedule_block(
    resource_id: str,
    payload: dict[str, Any] = Body(...),
    hapio: HapioService = Depends(get_hapio_service),
):
    body = _block_body(payload)
    recurring_schedule_id = body.pop("recurring_schedule_id", None)
    if not recurring_schedule_id:
        raise HTTPException(status_code=400, detail="recurring_schedule_id is required")

    existing = await _existing_blocks(hapio, resource_id, recurring_schedule_id)
    reject_field_errors(validate_recurring_block(body, existing))

    block = await proxy(
        hapio.create_recurring_schedule_block(resource_id, recurring_schedule_id, body),
        "Failed to create recurring schedule block",
    )
    logger.info(f"🗓️ Created recurring block on {body.get('weekday')} for resource {resource_id}")
    return {"block": block}


@router.patch("/resources/{resource_id}/recurring-schedule-blocks/{block_id}")
async def update_recurring_schedule_block(
    resource_id: str,
    block_id: str,
    payload: dict[str, Any] = Body(...),
    recurring_schedule_id: str = Query(...),
    hapio: HapioService = Depends(get_hapio_service),
):
    body = _block_body(payload)
    body.pop("recurring_schedule_id", None)

    existing = await _existing_blocks(hapio, resource_id, recurring_schedule_id)
    current = next((b for b in existing if str(b.get("id")) == block_id), {})
    reject_field_errors(validate_recurring_block({**current, **body}, existing, exclude_id=block_id))

    block = await proxy(
        hapio.update_recurring_schedule_block(resource_id, recurring_schedule_id, block_id, body),
        "Failed to update recurring schedule block",
    )
    return {"block": block}


@router.delete("/resources/{resource_id}/recurring-schedule-blocks/{block_id}")
async def delete_recurring_schedule_block(
    resource_id: str,
    block_id: str,
    recurring_schedule_id: str = Query(...),
    hapio: HapioService = Depends(get_hapio_service),
):
    await proxy(
        hapio.delete_recurring_schedule_block(resource_id, recurring_schedule_id, block_id),
        "Failed to delete recurring schedule block",
    )
    return {"success": True}


# ============================================================================
# ONE-OFF SCHEDULE BLOCKS
# ============================================================================


@router.get("/resources/{resource_id}/schedule-blocks")
async def list_schedule_blocks(
    resource_id: str,
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    hapio: HapioService = Depends(get_hapio_service),
):
    return await proxy(
        hapio.list_schedule_blocks(resource_id, from_, to, page, per_page),
        "Failed to retrieve schedule blocks",
    )


@router.post("/resources/{resource_id}/schedule-blocks")
async def create_schedule_block(
    resource_id: str, payload: dict[str, Any] = Body(...), hapio: HapioService = Depends(get_hapio_service)
):
    block = await proxy(hapio.create_schedule_block(resource_id, payload), "Failed to create schedule block")
    return {"block": block}


@router.patch("/resources/{resource_id}/schedule-blocks/{block_id}")
async def update_schedule_block(
    resource_id: str,
    block_id: str,
    payload: dict[str, Any] = Body(...),
    hapio: HapioService = Depends(get_hapio_service),
):
    block = await proxy(
        hapio.update_schedule_block(resource_id, block_id, payload), "Failed to update schedule block"
    )
    return {"block": block}


@router.delete("/resources/{resource_id}/schedule-blocks/{block_id}")
async def delete_schedule_block(
    resource_id: str, block_id: str, hapio: HapioService = Depends(get_hapio_service)
):
    await proxy(hapio.delete_schedule_block(resource_id, block_id), "Failed to delete schedule block")
    return {"success": True}
