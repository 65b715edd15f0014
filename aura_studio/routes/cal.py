"""
Cal.com Routes
Public availability plus short-lived slot reservations for the booking flow
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..cache import get_event_type_cached, set_event_type_cached
from ..config import STUDIO_TIMEZONE
from ..database import get_db
from ..models import Service
from ..rate_limiter import create_rate_limiter
from ..schemas import (
    AvailabilityMeta,
    AvailabilityResponse,
    AvailabilitySlot,
    ReleaseReservationResponse,
    ReservationOut,
    ReserveSlotRequest,
    ReserveSlotResponse,
    VerifyReservationResponse,
)
from ..services.cal_service import CalApiError, CalService, build_iso_range, cal_service, normalize_reservation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cal", tags=["Cal.com"])

DEFAULT_DAYS = 7
MAX_DAYS = 30

reservation_rate_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="cal_reserve")


def get_cal_service() -> CalService:
    return cal_service


def clamp_days(raw: Optional[str]) -> int:
    try:
        days = int(raw) if raw else DEFAULT_DAYS
    except ValueError:
        days = DEFAULT_DAYS
    if days == 0:
        days = DEFAULT_DAYS
    return max(1, min(days, MAX_DAYS))


def _parse_start(raw: Optional[str]) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid start date: {raw}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _provider_error(message: str, e: CalApiError) -> HTTPException:
    return HTTPException(status_code=e.status_code or 500, detail={"error": message, "details": e.details or str(e)})


def resolve_event_type(db: Session, slug: str) -> dict:
    """eventTypeId, title and duration for a service slug"""
    cached = get_event_type_cached(slug)
    if cached:
        return cached

    service = db.query(Service).filter(Service.slug == slug).first()
    if not service or not service.cal_event_type_id:
        raise HTTPException(status_code=404, detail=f"No Cal.com event type found for slug: {slug}")

    event_type = {
        "eventTypeId": service.cal_event_type_id,
        "title": service.name,
        "duration": service.duration_minutes,
    }
    set_event_type_cached(slug, event_type)
    return event_type


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    slug: Optional[str] = Query(None),
    start: Optional[str] = Query(None),
    days: Optional[str] = Query(None),
    tz: Optional[str] = Query(None, alias="timezone"),
    db: Session = Depends(get_db),
    cal: CalService = Depends(get_cal_service),
):
    """Open slots for a service over a window of days starting at UTC midnight of `start`"""
    if not slug:
        raise HTTPException(status_code=400, detail="Missing required parameter: slug")

    time_zone = tz or STUDIO_TIMEZONE
    event_type = resolve_event_type(db, slug)
    event_type_id = event_type["eventTypeId"]
    number_of_days = clamp_days(days)
    start_time, end_time = build_iso_range(_parse_start(start), number_of_days)

    try:
        slots_by_day = await cal.get_slots(event_type_id, start_time, end_time, time_zone)
    except CalApiError as e:
        logger.error(f"❌ Failed to fetch availability for {slug}: {e}")
        raise _provider_error("Failed to fetch availability from Cal.com", e) from e

    availability = [
        AvailabilitySlot(slot=slot["start"], duration=event_type["duration"], attendeeTimezone=time_zone)
        for day_slots in slots_by_day.values()
        if isinstance(day_slots, list)
        for slot in day_slots
        if isinstance(slot, dict) and slot.get("start")
    ]
    logger.info(f"📅 {len(availability)} slots for {slug} between {start_time} and {end_time}")

    return AvailabilityResponse(
        slug=slug,
        eventTypeId=event_type_id,
        title=event_type["title"],
        duration=event_type["duration"],
        availability=availability,
        meta=AvailabilityMeta(
            fetchedAt=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            startTime=start_time,
            endTime=end_time,
            timezone=time_zone,
            rateLimitRemaining=cal.last_rate_limit_remaining,
        ),
    )


@router.post("/reservations", response_model=ReserveSlotResponse)
async def reserve_slot(
    data: ReserveSlotRequest,
    cal: CalService = Depends(get_cal_service),
    _: None = Depends(reservation_rate_limit),
):
    slot_start = data.slotStart or data.startTime
    if not data.eventTypeId or not slot_start:
        raise HTTPException(status_code=400, detail="Missing required fields: eventTypeId, slotStart")

    try:
        reservation = await cal.reserve_slot(
            data.eventTypeId,
            slot_start,
            slot_duration=data.slotDuration,
            reservation_duration=data.reservationDuration,
        )
    except CalApiError as e:
        logger.error(f"❌ Failed to reserve slot {slot_start}: {e}")
        raise _provider_error("Failed to reserve Cal.com slot", e) from e

    return ReserveSlotResponse(reservation=ReservationOut(**reservation))


@router.delete("/reservations/{reservation_id}", response_model=ReleaseReservationResponse)
async def release_reservation(reservation_id: str, cal: CalService = Depends(get_cal_service)):
    try:
        await cal.release_reservation(reservation_id)
    except CalApiError as e:
        raise _provider_error("Failed to release reservation", e) from e
    return ReleaseReservationResponse(reservationId=reservation_id)


@router.get("/reservations/{reservation_id}/verify", response_model=VerifyReservationResponse)
async def verify_reservation(reservation_id: str, cal: CalService = Depends(get_cal_service)):
    """Confirm the provider still holds this reservation"""
    try:
        payload = await cal.get_reservation(reservation_id)
    except CalApiError as e:
        if e.status_code == 404:
            return VerifyReservationResponse(valid=False)
        raise _provider_error("Failed to verify reservation", e) from e

    reservation = normalize_reservation(payload)
    if not reservation or not reservation.get("id"):
        return VerifyReservationResponse(valid=False)

    expires_at = reservation.get("expiresAt")
    if expires_at:
        try:
            expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
            if expiry.tzinfo and expiry <= datetime.now(timezone.utc):
                return VerifyReservationResponse(valid=False, reservation=ReservationOut(**reservation))
        except ValueError:
            logger.warning(f"⚠️ Unparsable reservation expiry {expires_at!r} for {reservation_id}")

    return VerifyReservationResponse(valid=True, reservation=ReservationOut(**reservation))
