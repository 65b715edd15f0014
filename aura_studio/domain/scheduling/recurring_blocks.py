"""Checks applied to recurring schedule blocks before they are sent to Hapio"""

from typing import Any, Optional

from .schedule_utils import (
    WEEKDAYS,
    DaySchedule,
    InvalidFieldsError,
    TimeRange,
    day_of_week_to_name,
    detect_overlaps,
    format_time_range,
    from_hapio_weekday,
    to_hapio_weekday,
    validate_schedule,
)

DAY_OF_WEEK_MESSAGE = "Day of week must be a number from 0 (Sunday) to 6 (Saturday)"
UNKNOWN_WEEKDAY_MESSAGE = "Weekday must be a day name such as monday"


def _parse_day_of_week(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    day = int(value)
    if not 0 <= day <= 6:
        raise ValueError(value)
    return day


def _is_known_weekday(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0 <= value <= 7
    return isinstance(value, str) and value.strip().lower() in WEEKDAYS


def normalize_block_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Accept `day_of_week` (0-6) or any `weekday` form and send Hapio its enum.

    Times keep whatever precision the caller used (HH:MM or HH:MM:SS).
    Raises InvalidFieldsError for a day that cannot be mapped.
    """
    body = dict(payload)
    if "day_of_week" in body:
        try:
            day = _parse_day_of_week(body.pop("day_of_week"))
        except (TypeError, ValueError):
            raise InvalidFieldsError({"weekday": [DAY_OF_WEEK_MESSAGE]}) from None
        body["weekday"] = to_hapio_weekday(day)
    elif body.get("weekday") is not None:
        if not _is_known_weekday(body["weekday"]):
            raise InvalidFieldsError({"weekday": [UNKNOWN_WEEKDAY_MESSAGE]})
        body["weekday"] = to_hapio_weekday(from_hapio_weekday(body["weekday"]))
    return body


def _short_time(value: str) -> str:
    return ":".join(value.split(":")[:2])


def _to_day_schedule(block: dict[str, Any]) -> Optional[DaySchedule]:
    weekday, start, end = block.get("weekday"), block.get("start_time"), block.get("end_time")
    if weekday is None or not start or not end:
        return None
    return DaySchedule(
        day_of_week=from_hapio_weekday(weekday),
        time_range=TimeRange(_short_time(start), _short_time(end)),
    )


def validate_recurring_block(
    block: dict[str, Any],
    existing_blocks: list[dict[str, Any]],
    exclude_id: Optional[str] = None,
) -> dict[str, list[str]]:
    """
    Field errors for a recurring block (empty when it may be saved).

    `block` is the full post-update state, `existing_blocks` the other blocks
    of the same recurring schedule as Hapio returns them.
    """
    errors: dict[str, list[str]] = {}

    if block.get("weekday") is None:
        errors["weekday"] = ["Weekday is required"]
    if not block.get("start_time") or not block.get("end_time"):
        errors["start_time"] = ["Start and end times are required"]
    if errors:
        return errors

    schedule = _to_day_schedule(block)
    valid, message = validate_schedule(schedule)
    if not valid:
        field = "end_time" if message == "Invalid end time" else "start_time"
        return {field: [message]}

    others = [
        parsed
        for other in existing_blocks
        if str(other.get("id")) != str(exclude_id)
        for parsed in [_to_day_schedule(other)]
        if parsed is not None
    ]
    overlaps = detect_overlaps(schedule, others)
    if overlaps:
        ranges = ", ".join(format_time_range(o.time_range) for o in overlaps)
        day = day_of_week_to_name(schedule.day_of_week)
        errors["start_time"] = [f"Overlaps with existing block(s) on {day}: {ranges}"]

    return errors
