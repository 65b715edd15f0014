import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from ..config import CAL_API_BASE_URL, CAL_API_KEY, CAL_RESERVATION_MINUTES

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-09-04"
BOOKINGS_API_VERSION = "2024-08-13"
EVENT_TYPES_API_VERSION = "2024-06-14"

MAX_REQUESTS_PER_MINUTE = 60
RATE_WINDOW_SECONDS = 60.0
REMAINING_THRESHOLD = 20
PAUSE_DURATION_SECONDS = 30.0

RATE_LIMIT_REMAINING_HEADERS = ("x-ratelimit-remaining", "x-ratelimit-remaining-default")


class CalApiError(Exception):
    """Raised when Cal.com rejects a request or cannot be reached"""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def _pick_header_number(headers: httpx.Headers, keys: tuple[str, ...]) -> Optional[int]:
    for key in keys:
        value = headers.get(key)
        if value is None:
            continue
        try:
            return int(float(value))
        except ValueError:
            continue
    return None


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def normalize_reservation(payload: Any) -> Optional[dict[str, Any]]:
    """Map the various Cal.com reservation shapes onto one dict"""
    if not payload:
        return None

    data = _unwrap(payload) or {}
    slot = data.get("slot") or {}
    return {
        "id": data.get("reservationUid") or data.get("id") or data.get("reservationId"),
        "expiresAt": data.get("reservationUntil") or data.get("expiresAt") or data.get("expires_at"),
        "startTime": data.get("slotStart") or data.get("startTime") or slot.get("start"),
        "endTime": data.get("slotEnd") or data.get("endTime") or slot.get("end"),
        "timezone": data.get("timeZone") or data.get("timezone") or slot.get("timezone"),
        "raw": data,
    }


def build_iso_range(start: datetime, number_of_days: int) -> tuple[str, str]:
    """UTC midnight of the start date through `number_of_days` later"""
    if start.tzinfo is not None:
        start = start.astimezone(timezone.utc)
    start_of_day = datetime(start.year, start.month, start.day, tzinfo=timezone.utc)
    end_of_day = start_of_day + timedelta(days=number_of_days)
    return (
        start_of_day.isoformat().replace("+00:00", "Z"),
        end_of_day.isoformat().replace("+00:00", "Z"),
    )


class CalService:
    """Service for interacting with the Cal.com v2 API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or CAL_API_KEY
        self.base_url = (base_url or CAL_API_BASE_URL).rstrip("/")
        self._transport = transport
        self._request_times: deque[float] = deque()
        self._pause_until = 0.0
        self._throttle_lock = asyncio.Lock()
        self.last_rate_limit_remaining: Optional[int] = None

    @staticmethod
    def _resolve_version(path: str) -> str:
        if path.startswith("bookings"):
            return BOOKINGS_API_VERSION
        if path.startswith("event-types"):
            return EVENT_TYPES_API_VERSION
        return DEFAULT_API_VERSION

    async def _throttle(self) -> None:
        """Stay under 60 requests per rolling minute and honor provider back-pressure"""
        async with self._throttle_lock:
            while True:
                now = time.monotonic()
                if self._pause_until > now:
                    await asyncio.sleep(self._pause_until - now)
                    continue

                while self._request_times and now - self._request_times[0] >= RATE_WINDOW_SECONDS:
                    self._request_times.popleft()

                if len(self._request_times) < MAX_REQUESTS_PER_MINUTE:
                    # Claimed before the lock is released
                    self._request_times.append(now)
                    return

                wait = RATE_WINDOW_SECONDS - (now - self._request_times[0])
                logger.warning(f"⏳ Cal.com request budget exhausted, waiting {wait:.1f}s")
                await asyncio.sleep(wait)

    def _record_response(self, headers: httpx.Headers) -> None:
        remaining = _pick_header_number(headers, RATE_LIMIT_REMAINING_HEADERS)
        self.last_rate_limit_remaining = remaining
        if remaining is not None and -1 < remaining < REMAINING_THRESHOLD:
            logger.warning(f"⚠️ Cal.com rate limit low ({remaining} left), pausing requests")
            self._pause_until = max(self._pause_until, time.monotonic() + PAUSE_DURATION_SECONDS)

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        if not self.api_key:
            logger.error("CAL_API_KEY not configured in environment variables")
            raise CalApiError("Cal.com API key not configured", status_code=500)

        path = path.lstrip("/")
        await self._throttle()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "cal-api-version": self._resolve_version(path),
        }

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.request(
                    method, f"{self.base_url}/{path}", headers=headers, json=json, params=params
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ Cal.com request {method} {path} failed: {e}")
                raise CalApiError(f"Cal.com unreachable: {e}", status_code=502) from e

        self._record_response(response.headers)

        if response.status_code >= 400:
            try:
                details = response.json()
            except ValueError:
                details = response.text
            logger.error(f"❌ Cal.com {method} {path} returned {response.status_code}: {details}")
            message = "Cal.com request failed"
            if isinstance(details, dict):
                nested = details.get("details") if isinstance(details.get("details"), dict) else {}
                error = details.get("error")
                if isinstance(error, dict):
                    error = error.get("message")
                message = nested.get("message") or details.get("message") or error or message
            raise CalApiError(message, status_code=response.status_code, details=details)

        if not response.content:
            return None
        return response.json()

    async def get_slots(
        self, event_type_id: int, start: str, end: str, time_zone: str
    ) -> dict[str, list[dict[str, Any]]]:
        """Open slots keyed by date"""
        payload = await self._request(
            "GET",
            "slots",
            params={
                "eventTypeId": event_type_id,
                "start": start,
                "end": end,
                "timeZone": time_zone,
            },
        )
        return _unwrap(payload) or {}

    async def reserve_slot(
        self,
        event_type_id: int,
        slot_start: str,
        slot_duration: Optional[int] = None,
        reservation_duration: Optional[int] = None,
    ) -> dict[str, Any]:
        """Hold a slot for a short time while the client pays"""
        body: dict[str, Any] = {"eventTypeId": event_type_id, "slotStart": slot_start}
        if slot_duration:
            body["slotDuration"] = slot_duration
        body["reservationDuration"] = reservation_duration or CAL_RESERVATION_MINUTES

        logger.info(f"📌 Reserving Cal.com slot {slot_start} for event type {event_type_id}")
        payload = await self._request("POST", "slots/reservations", json=body)
        reservation = normalize_reservation(payload)
        if not reservation or not reservation.get("id"):
            raise CalApiError("Reservation created but ID missing", status_code=502, details=payload)
        return reservation

    async def get_reservation(self, reservation_id: str) -> dict[str, Any]:
        payload = await self._request("GET", f"slots/reservations/{reservation_id}")
        return _unwrap(payload) or {}

    async def release_reservation(self, reservation_id: str) -> None:
        logger.info(f"🗑️ Releasing Cal.com reservation {reservation_id}")
        await self._request("DELETE", f"slots/reservations/{reservation_id}")

    async def cancel_booking(self, booking_uid: str, reason: Optional[str] = None) -> None:
        body = {"cancellationReason": reason} if reason else {}
        logger.info(f"🗑️ Cancelling Cal.com booking {booking_uid}")
        await self._request("POST", f"bookings/{booking_uid}/cancel", json=body)


cal_service = CalService()
