"""Admin dashboard session: password login exchanged for a signed cookie"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import Cookie, HTTPException, Response

from .config import ADMIN_COOKIE_NAME, ADMIN_PASSWORD, ADMIN_SESSION_HOURS, IS_PRODUCTION
from .security_utils import create_jwt_token, secrets_match, verify_jwt_token

logger = logging.getLogger(__name__)

ADMIN_TOKEN_PURPOSE = "admin_session"


def check_admin_password(password: Optional[str], expected: Optional[str] = None) -> bool:
    expected = expected if expected is not None else ADMIN_PASSWORD
    if not expected:
        logger.error("❌ ADMIN_PASSWORD not configured - admin login disabled")
        return False
    return secrets_match(password, expected)


def issue_admin_session(response: Response) -> str:
    token = create_jwt_token(
        {"sub": "admin", "purpose": ADMIN_TOKEN_PURPOSE},
        expires_delta=timedelta(hours=ADMIN_SESSION_HOURS),
    )
    response.set_cookie(
        key=ADMIN_COOKIE_NAME,
        value=token,
        max_age=ADMIN_SESSION_HOURS * 3600,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="lax",
        path="/",
    )
    return token


def clear_admin_session(response: Response) -> None:
    response.delete_cookie(key=ADMIN_COOKIE_NAME, path="/")


async def require_admin(
    admin_token: Optional[str] = Cookie(default=None, alias=ADMIN_COOKIE_NAME),
) -> dict:
    """Dependency guarding every /api/admin route except login"""
    if not admin_token:
        raise HTTPException(status_code=401, detail="Admin authentication required")

    payload = verify_jwt_token(admin_token, purpose=ADMIN_TOKEN_PURPOSE)
    if not payload:
        raise HTTPException(status_code=401, detail="Admin session expired or invalid")
    return payload
