"""Client-side state carried by the booking modal"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..config import STUDIO_TIMEZONE
from ..shared.validators import is_valid_email, is_valid_phone, normalize_phone_for_submit

DEFAULT_HOLD_SECONDS = 120


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class SlotSelection:
    start_time: str
    event_type_id: int
    timezone: str = STUDIO_TIMEZONE
    duration: Optional[int] = None
    label: Optional[str] = None

    @property
    def key(self) -> str:
        """Identifies one reservation attempt; responses for other keys are stale"""
        return f"{self.event_type_id}:{self.start_time}"

    def to_payload(self) -> dict[str, Any]:
        return {
            "startTime": self.start_time,
            "eventTypeId": self.event_type_id,
            "timezone": self.timezone,
            "duration": self.duration,
            "label": self.label,
        }


@dataclass
class Reservation:
    id: str
    expires_at: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    timezone: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Reservation":
        return cls(
            id=str(data["id"]),
            expires_at=data.get("expiresAt"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            timezone=data.get("timezone"),
        )

    def seconds_remaining(self, now: datetime) -> int:
        expires = parse_iso(self.expires_at)
        if expires is None or expires.tzinfo is None:
            return DEFAULT_HOLD_SECONDS
        return max(0, int((expires - now).total_seconds()))

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "expiresAt": self.expires_at,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "timezone": self.timezone,
        }


@dataclass
class ContactDetails:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    notes: str = ""

    def validate(self) -> dict[str, str]:
        """Field errors keyed by the form field name, empty when valid"""
        errors: dict[str, str] = {}
        if not self.first_name.strip():
            errors["firstName"] = "Enter first name"
        if not self.last_name.strip():
            errors["lastName"] = "Enter last name"
        if not is_valid_email(self.email):
            errors["email"] = "Enter a valid email"
        if not is_valid_phone(self.phone):
            errors["phone"] = "Enter a valid phone number"
        return errors

    @property
    def is_complete(self) -> bool:
        return not self.validate()

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()

    def to_payload(self) -> dict[str, Any]:
        return {
            "firstName": self.first_name.strip(),
            "lastName": self.last_name.strip(),
            "email": self.email.strip(),
            "phone": normalize_phone_for_submit(self.phone),
            "notes": self.notes.strip(),
        }


@dataclass
class DiscountValidation:
    valid: bool = False
    code: Optional[str] = None
    discount_amount: float = 0.0
    original_amount: float = 0.0
    final_amount: float = 0.0
    requires_email: bool = False
    error: Optional[str] = None
    coupon: dict[str, Any] = field(default_factory=dict)
