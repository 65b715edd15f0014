import logging
from typing import Any, Optional

import httpx

from ..config import CAL_RESERVATION_MINUTES, SITE_URL

logger = logging.getLogger(__name__)


class BookingApiError(Exception):
    """Raised when the booking API answers with an error or cannot be reached"""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class BookingApiClient:
    """Thin async client for the public /api endpoints used by the booking modal"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or SITE_URL).rstrip("/")
        self.transport = transport
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}/api{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ {method} {path} failed: {e}")
            raise BookingApiError("Network error. Please check your connection and try again.", 503) from e

        data: Any = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                data = None

        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise BookingApiError(
                message or f"Request failed ({response.status_code})",
                response.status_code,
                data.get("details") if isinstance(data, dict) else None,
            )
        return data

    # Availability and reservations

    async def get_availability(self, slug: str, start: str, days: int, timezone: str) -> dict:
        return await self._request(
            "GET",
            "/cal/availability",
            params={"slug": slug, "start": start, "days": days, "timezone": timezone},
        )

    async def reserve_slot(
        self,
        event_type_id: int,
        slot_start: str,
        slot_duration: Optional[int] = None,
        timezone: Optional[str] = None,
    ) -> dict:
        payload: dict[str, Any] = {
            "eventTypeId": event_type_id,
            "slotStart": slot_start,
            "reservationDuration": CAL_RESERVATION_MINUTES,
        }
        if slot_duration:
            payload["slotDuration"] = slot_duration
        if timezone:
            payload["timeZone"] = timezone

        data = await self._request("POST", "/cal/reservations", json=payload)
        return (data or {}).get("reservation") or {}

    async def verify_reservation(self, reservation_id: str) -> dict:
        return await self._request("GET", f"/cal/reservations/{reservation_id}/verify")

    async def release_reservation(self, reservation_id: str) -> None:
        await self._request("DELETE", f"/cal/reservations/{reservation_id}")

    # Payments and bookings

    async def validate_discount(
        self, code: str, amount: float, customer_email: str, customer_name: Optional[str] = None
    ) -> dict:
        return await self._request(
            "POST",
            "/payments/validate-discount",
            json={
                "code": code,
                "amount": amount,
                "customerEmail": customer_email,
                "customerName": customer_name,
            },
        )

    async def create_payment_intent(self, payload: dict[str, Any]) -> dict:
        return await self._request("POST", "/payments/create-intent", json=payload)

    async def create_booking_token(self, payment_intent_id: str, selected_slot: dict[str, Any]) -> dict:
        return await self._request(
            "POST",
            "/bookings/create-token",
            json={"paymentIntentId": payment_intent_id, "selectedSlot": selected_slot},
        )
