"""
Hapio service payloads.

The admin editors work in minutes; Hapio stores service durations and
buffers as ISO-8601 durations (PT60M).
"""

import logging
from typing import Any

from .schedule_utils import InvalidFieldsError, iso8601_to_minutes, minutes_to_iso8601

logger = logging.getLogger(__name__)

# our field -> Hapio field
MINUTE_FIELDS = {
    "duration_minutes": "duration",
    "buffer_before_minutes": "buffer_time_before",
    "buffer_after_minutes": "buffer_time_after",
}

MINUTES_MESSAGE = "Must be a whole number of minutes (0 or more)"


def _whole_minutes(value: Any) -> int:
    if isinstance(value, bool) or isinstance(value, float) and not value.is_integer():
        raise ValueError(value)
    minutes = int(value)
    if minutes < 0:
        raise ValueError(value)
    return minutes


def to_hapio_service_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Swap minute fields for their ISO-8601 Hapio counterparts"""
    body = dict(payload)
    errors: dict[str, list[str]] = {}

    for field, hapio_field in MINUTE_FIELDS.items():
        if field not in body:
            continue
        value = body.pop(field)
        if value is None:
            continue
        try:
            body[hapio_field] = minutes_to_iso8601(_whole_minutes(value))
        except (TypeError, ValueError):
            errors[field] = [MINUTES_MESSAGE]

    if errors:
        raise InvalidFieldsError(errors)
    return body


def with_duration_minutes(service: Any) -> Any:
    """Add `duration_minutes` next to Hapio's ISO `duration`"""
    if not isinstance(service, dict) or not service.get("duration"):
        return service
    try:
        return {**service, "duration_minutes": iso8601_to_minutes(service["duration"])}
    except ValueError:
        logger.warning(f"⚠️ Unparsable Hapio duration {service['duration']!r} on service {service.get('id')}")
        return service


def with_duration_minutes_list(response: Any) -> Any:
    """Same as with_duration_minutes for a paginated `{data: [...]}` listing"""
    if isinstance(response, dict) and isinstance(response.get("data"), list):
        return {**response, "data": [with_duration_minutes(s) for s in response["data"]]}
    if isinstance(response, list):
        return [with_duration_minutes(s) for s in response]
    return response
