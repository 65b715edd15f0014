"""
Security utilities: signed tokens, constant-time secret checks and input
sanitization
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bleach
from jose import JWTError
from jose import jwt as jose_jwt

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Claims to encode in the token
        expires_delta: Token lifetime (default 15 minutes)
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "jti": secrets.token_hex(8)})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(
    token: str, purpose: Optional[str] = None, verify_exp: bool = True
) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid (and issued for `purpose`, when given),
        None if invalid or expired
    """
    try:
        payload = jose_jwt.decode(
            token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_exp": verify_exp}
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if purpose and payload.get("purpose") != purpose:
        logger.warning(f"JWT issued for {payload.get('purpose')!r}, expected {purpose!r}")
        return None
    return payload


def secrets_match(provided: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time string comparison; never matches an unset secret"""
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def sanitize_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """Strip all markup from free-text input (booking notes, addresses)"""
    if value is None:
        return None
    cleaned = bleach.clean(value, tags=[], attributes={}, strip=True).strip()
    return cleaned[:max_length]
