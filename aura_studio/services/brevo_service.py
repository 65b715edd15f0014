import logging
import secrets
from typing import Any, Optional

import httpx

from ..config import BREVO_API_KEY, BREVO_LIST_ID

logger = logging.getLogger(__name__)

BREVO_CONTACTS_URL = "https://api.brevo.com/v3/contacts"

# Excludes 0, O, 1 and I so codes can be read back over the phone
WELCOME_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
WELCOME_CODE_PREFIX = "welcome15"


class BrevoError(Exception):
    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class BrevoNotConfiguredError(BrevoError):
    def __init__(self):
        super().__init__("Server configuration error", status_code=500)


def generate_welcome_code() -> str:
    suffix = "".join(secrets.choice(WELCOME_CODE_ALPHABET) for _ in range(8))
    return f"{WELCOME_CODE_PREFIX}{suffix}"


class BrevoService:
    """Service for adding contacts to the Brevo marketing list"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        list_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else BREVO_API_KEY
        self.list_id = list_id if list_id is not None else BREVO_LIST_ID
        self._transport = transport

    async def upsert_contact(self, email: str, attributes: dict[str, Any]) -> dict[str, Any]:
        """
        Create or update a contact on the configured list.

        Returns a dict with a human readable "message"; "already subscribed"
        responses from Brevo are treated as success.
        """
        if not self.api_key or not self.list_id:
            logger.error("❌ Missing Brevo credentials (BREVO_API_KEY / BREVO_LIST_ID)")
            raise BrevoNotConfiguredError()
        try:
            list_id = int(self.list_id)
        except (TypeError, ValueError):
            logger.error(f"❌ BREVO_LIST_ID must be numeric, got {self.list_id!r}")
            raise BrevoNotConfiguredError() from None

        contact = {
            "email": email,
            "listIds": [list_id],
            "updateEnabled": True,
            "emailBlacklisted": False,
            "smsBlacklisted": False,
            "attributes": attributes,
        }

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    BREVO_CONTACTS_URL,
                    json=contact,
                    headers={
                        "api-key": self.api_key,
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                    },
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ Brevo request failed: {e}")
                raise BrevoError("Failed to subscribe", status_code=502) from e

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {"message": response.text}

        if response.status_code >= 400:
            if response.status_code == 400:
                if data.get("code") == "duplicate_parameter":
                    logger.info(f"🔄 Brevo contact {email} already exists - updated")
                    return {"message": "Already subscribed - contact updated"}
                if "already exist" in (data.get("message") or ""):
                    logger.info(f"🔄 Brevo contact {email} already in list")
                    return {"message": "You are already subscribed!"}

            logger.error(f"❌ Brevo API error {response.status_code}: {data}")
            raise BrevoError(
                data.get("message") or "Failed to subscribe",
                status_code=response.status_code,
                details=data,
            )

        logger.info(f"✅ Brevo contact subscribed: {email}")
        return {"message": "Successfully subscribed", "data": data}


brevo_service = BrevoService()
