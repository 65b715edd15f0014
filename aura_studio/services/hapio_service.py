"""
Hapio API client
Thin async wrapper over the scheduling provider's resources, locations,
services, recurring schedules and schedule blocks
"""
import logging
from typing import Any, Literal, Optional

import httpx

from ..config import HAPIO_API_TOKEN, HAPIO_BASE_URL

logger = logging.getLogger(__name__)

ParentType = Literal["project", "location", "resource"]


class HapioError(Exception):
    """Non-validation failure returned by Hapio (4xx/5xx) or a network error"""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class HapioValidationError(HapioError):
    """422 ValidationException with per-field messages"""

    def __init__(self, message: str, errors: dict[str, list[str]], details: Any = None):
        super().__init__(message, status_code=422, details=details)
        self.errors = errors

    def get_field_errors(self) -> list[dict[str, str]]:
        return [
            {"field": field, "message": message}
            for field, messages in self.errors.items()
            for message in messages
        ]

    def get_field_error(self, field: str) -> Optional[str]:
        messages = self.errors.get(field) or []
        return messages[0] if messages else None


def _pagination_params(page: Optional[int], per_page: Optional[int]) -> dict[str, int]:
    params = {}
    if page:
        params["page"] = page
    if per_page:
        params["per_page"] = per_page
    return params


def _parent_path(parent_type: ParentType, parent_id: Optional[str]) -> str:
    if parent_type == "project":
        return ""
    if not parent_id:
        raise HapioError(f"parent_id is required for parent_type '{parent_type}'", status_code=400)
    return f"{parent_type}s/{parent_id}/"


class HapioService:
    """Service for interacting with the Hapio API"""

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token or HAPIO_API_TOKEN
        self.base_url = (base_url or HAPIO_BASE_URL).rstrip("/")
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        # Token is checked per request so the module imports without configuration
        if not self.api_token:
            raise HapioError("HAPIO_API_TOKEN is not configured.", status_code=500)

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.request(
                    method, f"{self.base_url}/{path}", headers=headers, json=json, params=params
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ Hapio request {method} {path} failed: {e}")
                raise HapioError(f"Hapio unreachable: {e}", status_code=502) from e

        if response.status_code >= 400:
            try:
                data = response.json()
            except ValueError:
                data = {"message": response.text}

            message = (
                data.get("message") if isinstance(data, dict) and data.get("message") else None
            ) or f"Hapio API error ({response.status_code})"

            if response.status_code == 422 and isinstance(data, dict) and data.get("errors"):
                logger.warning(f"⚠️ Hapio validation failed for {method} {path}: {data['errors']}")
                raise HapioValidationError(message, data["errors"], details=data)

            logger.error(f"❌ Hapio {method} {path} returned {response.status_code}: {data}")
            raise HapioError(message, status_code=response.status_code, details=data)

        if not response.content:
            return None
        return response.json()

    # Project

    async def get_project(self) -> dict[str, Any]:
        return await self._request("GET", "project")

    # Locations

    async def list_locations(self, page: Optional[int] = None, per_page: Optional[int] = None):
        return await self._request("GET", "locations", params=_pagination_params(page, per_page))

    async def get_location(self, location_id: str):
        return await self._request("GET", f"locations/{location_id}")

    async def create_location(self, payload: dict[str, Any]):
        logger.info(f"📍 Creating Hapio location {payload.get('name')}")
        return await self._request("POST", "locations", json=payload)

    async def update_location(self, location_id: str, payload: dict[str, Any]):
        return await self._request("PATCH", f"locations/{location_id}", json=payload)

    async def delete_location(self, location_id: str) -> None:
        await self._request("DELETE", f"locations/{location_id}")

    # Resources

    async def list_resources(self, page: Optional[int] = None, per_page: Optional[int] = None):
        return await self._request("GET", "resources", params=_pagination_params(page, per_page))

    async def get_resource(self, resource_id: str):
        return await self._request("GET", f"resources/{resource_id}")

    async def create_resource(self, payload: dict[str, Any]):
        logger.info(f"👤 Creating Hapio resource {payload.get('name')}")
        return await self._request("POST", "resources", json=payload)

    async def update_resource(self, resource_id: str, payload: dict[str, Any]):
        return await self._request("PATCH", f"resources/{resource_id}", json=payload)

    async def delete_resource(self, resource_id: str) -> None:
        await self._request("DELETE", f"resources/{resource_id}")

    # Services

    async def list_services(self, page: Optional[int] = None, per_page: Optional[int] = None):
        return await self._request("GET", "services", params=_pagination_params(page, per_page))

    async def get_service(self, service_id: str):
        return await self._request("GET", f"services/{service_id}")

    async def create_service(self, payload: dict[str, Any]):
        logger.info(f"💆 Creating Hapio service {payload.get('name')}")
        return await self._request("POST", "services", json=payload)

    async def update_service(self, service_id: str, payload: dict[str, Any]):
        return await self._request("PATCH", f"services/{service_id}", json=payload)

    async def delete_service(self, service_id: str) -> None:
        await self._request("DELETE", f"services/{service_id}")

    # Recurring schedules

    async def list_recurring_schedules(
        self,
        parent_type: ParentType,
        parent_id: Optional[str] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ):
        path = f"{_parent_path(parent_type, parent_id)}recurring-schedules"
        return await self._request("GET", path, params=_pagination_params(page, per_page))

    async def create_recurring_schedule(
        self, parent_type: ParentType, parent_id: Optional[str], payload: dict[str, Any]
    ):
        path = f"{_parent_path(parent_type, parent_id)}recurring-schedules"
        return await self._request("POST", path, json=payload)

    async def update_recurring_schedule(
        self,
        parent_type: ParentType,
        parent_id: Optional[str],
        schedule_id: str,
        payload: dict[str, Any],
    ):
        path = f"{_parent_path(parent_type, parent_id)}recurring-schedules/{schedule_id}"
        return await self._request("PATCH", path, json=payload)

    async def delete_recurring_schedule(
        self, parent_type: ParentType, parent_id: Optional[str], schedule_id: str
    ) -> None:
        path = f"{_parent_path(parent_type, parent_id)}recurring-schedules/{schedule_id}"
        await self._request("DELETE", path)

    # Recurring schedule blocks (weekday time ranges inside a recurring schedule)

    async def list_recurring_schedule_blocks(
        self,
        resource_id: str,
        recurring_schedule_id: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ):
        path = f"resources/{resource_id}/recurring-schedules/{recurring_schedule_id}/schedule-blocks"
        return await self._request("GET", path, params=_pagination_params(page, per_page))

    async def create_recurring_schedule_block(
        self, resource_id: str, recurring_schedule_id: str, payload: dict[str, Any]
    ):
        path = f"resources/{resource_id}/recurring-schedules/{recurring_schedule_id}/schedule-blocks"
        return await self._request("POST", path, json=payload)

    async def update_recurring_schedule_block(
        self, resource_id: str, recurring_schedule_id: str, block_id: str, payload: dict[str, Any]
    ):
        path = (
            f"resources/{resource_id}/recurring-schedules/{recurring_schedule_id}"
            f"/schedule-blocks/{block_id}"
        )
        return await self._request("PATCH", path, json=payload)

    async def delete_recurring_schedule_block(
        self, resource_id: str, recurring_schedule_id: str, block_id: str
    ) -> None:
        path = (
            f"resources/{resource_id}/recurring-schedules/{recurring_schedule_id}"
            f"/schedule-blocks/{block_id}"
        )
        await self._request("DELETE", path)

    # One-off schedule blocks

    async def list_schedule_blocks(
        self,
        resource_id: str,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ):
        params: dict[str, Any] = _pagination_params(page, per_page)
        if from_:
            params["from"] = from_
        if to:
            params["to"] = to
        return await self._request("GET", f"resources/{resource_id}/schedule-blocks", params=params)

    async def create_schedule_block(self, resource_id: str, payload: dict[str, Any]):
        return await self._request("POST", f"resources/{resource_id}/schedule-blocks", json=payload)

    async def update_schedule_block(self, resource_id: str, block_id: str, payload: dict[str, Any]):
        return await self._request(
            "PATCH", f"resources/{resource_id}/schedule-blocks/{block_id}", json=payload
        )

    async def delete_schedule_block(self, resource_id: str, block_id: str) -> None:
        await self._request("DELETE", f"resources/{resource_id}/schedule-blocks/{block_id}")

    # Bookings

    async def cancel_booking(self, booking_id: str) -> None:
        logger.info(f"🗑️ Cancelling Hapio booking {booking_id}")
        await self._request("DELETE", f"bookings/{booking_id}")


hapio_service = HapioService()
