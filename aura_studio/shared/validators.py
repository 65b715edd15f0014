"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PRICE_PATTERN = re.compile(r"\$?(\d+(\.\d{1,2})?)")


def is_valid_email(value: Optional[str]) -> bool:
    """Loose email check shared by the booking form and every capture form"""
    if not value:
        return False
    return bool(EMAIL_PATTERN.match(value.strip()))


def phone_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def is_valid_phone(value: Optional[str]) -> bool:
    """A phone number is usable once it has at least 10 digits"""
    return len(phone_digits(value)) >= 10


def normalize_phone_for_submit(value: str) -> str:
    """
    Normalize a displayed phone number before sending it to the API.

    Exactly 10 digits are sent bare, longer numbers get a leading "+",
    anything shorter is returned trimmed as typed.
    """
    digits = phone_digits(value)
    if len(digits) >= 10:
        return digits if len(digits) == 10 else f"+{digits}"
    return value.strip()


def format_phone_e164(value: Optional[str]) -> Optional[str]:
    """
    Format a phone number for the email marketing platform.

    10 digits are assumed to be US numbers (+1XXXXXXXXXX); anything else is
    prefixed with "+" as-is.
    """
    digits = phone_digits(value)
    if not digits:
        return None
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def extract_numeric_price(price: Optional[str]) -> float:
    """Pull the first dollar amount out of a display price like "$150" or "From $85.50" """
    if not price:
        return 0.0
    match = PRICE_PATTERN.search(price)
    return float(match.group(1)) if match else 0.0


def normalize_is_active(value) -> bool:
    """
    Normalize a stored is_active flag.

    NULL and unrecognized values are INACTIVE.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    text = str(value).strip().lower()
    return text in ("t", "true", "1")


def split_full_name(name: Optional[str]) -> Optional[tuple[str, str]]:
    """Split "First Last Name" into ("First", "Last Name"); None for single words"""
    if not name:
        return None
    parts = name.strip().split()
    if len(parts) < 2:
        return None
    return parts[0], " ".join(parts[1:])
