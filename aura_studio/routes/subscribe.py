"""Email capture - every signup form posts here and lands on the Brevo list"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..rate_limiter import create_rate_limiter
from ..schemas import SubscribeRequest, SubscribeResponse
from ..security_utils import sanitize_text
from ..services.brevo_service import BrevoError, BrevoService, brevo_service, generate_welcome_code
from ..shared.validators import format_phone_e164

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Subscribe"])

WELCOME_OFFER_SOURCE = "welcome-offer"

subscribe_rate_limit = create_rate_limiter(limit=5, window_seconds=60, key_prefix="subscribe")


def get_brevo_service() -> BrevoService:
    return brevo_service


def build_contact_attributes(data: SubscribeRequest) -> dict[str, str]:
    """Brevo attribute names are case-sensitive"""
    attributes = {"FIRSTNAME": data.firstName, "LASTNAME": data.lastName}

    phone = format_phone_e164(data.phone)
    if phone:
        attributes["SMS"] = phone
        attributes["LANDLINE_NUMBER"] = phone

    if data.birthday and data.birthday.strip():
        attributes["BIRTHDAY"] = data.birthday.strip()  # YYYY-MM-DD
    if data.address and data.address.strip():
        attributes["PHYSICAL_ADDRESS"] = sanitize_text(data.address)
    if data.signupSource and data.signupSource.strip():
        attributes["SIGNUP_SOURCE"] = data.signupSource.strip()

    if data.signupSource == WELCOME_OFFER_SOURCE:
        attributes["WELCOME_CODE"] = generate_welcome_code()

    return attributes


@router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe(
    data: SubscribeRequest,
    brevo: BrevoService = Depends(get_brevo_service),
    _: None = Depends(subscribe_rate_limit),
):
    """Add or update a marketing contact; repeat signups count as success"""
    attributes = build_contact_attributes(data)
    logger.info(f"📧 Subscribing {data.email} (source={data.signupSource or 'unknown'})")

    try:
        result = await brevo.upsert_contact(data.email, attributes)
    except BrevoError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": str(e), "details": e.details},
        ) from e

    return SubscribeResponse(message=result["message"])
