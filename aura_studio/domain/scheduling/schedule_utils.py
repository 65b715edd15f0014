"""
Schedule utilities for the admin editors: overlap detection, validation,
weekday and ISO-8601 duration conversion
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

WEEKDAYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEKDAY_SHORT_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

ISO_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
TIME_PATTERN = re.compile(r"^(-?\d+):(-?\d+)")


@dataclass
class TimeRange:
    start: str  # HH:MM
    end: str  # HH:MM


@dataclass
class DaySchedule:
    day_of_week: int
    time_range: TimeRange


class InvalidFieldsError(ValueError):
    """A payload could not be translated for Hapio; `errors` maps field -> messages"""

    def __init__(self, errors: dict[str, list[str]]):
        super().__init__(next(iter(errors.values()))[0])
        self.errors = errors


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def time_ranges_overlap(first: TimeRange, second: TimeRange) -> bool:
    """
    True when two daily ranges share any time.

    Ranges ending before they start run past midnight (23:00-01:00).
    Identical ranges always overlap; touching ranges (09:00-10:00 and
    10:00-11:00) do not.
    """
    start1, end1 = _to_minutes(first.start), _to_minutes(first.end)
    start2, end2 = _to_minutes(second.start), _to_minutes(second.end)

    end1_adjusted = end1 + MINUTES_PER_DAY if end1 < start1 else end1
    end2_adjusted = end2 + MINUTES_PER_DAY if end2 < start2 else end2
    start2_adjusted = start2 + MINUTES_PER_DAY if end1 < start1 and start2 < end1 else start2
    start1_adjusted = start1 + MINUTES_PER_DAY if end2 < start2 and start1 < end2 else start1

    return (start1_adjusted < end2_adjusted and start2_adjusted < end1_adjusted) or (
        start1_adjusted == start2_adjusted and end1_adjusted == end2_adjusted
    )


def detect_overlaps(new_schedule: DaySchedule, existing: list[DaySchedule]) -> list[DaySchedule]:
    """Existing schedules on the same weekday that overlap the new one"""
    return [
        schedule
        for schedule in existing
        if schedule.day_of_week == new_schedule.day_of_week
        and time_ranges_overlap(schedule.time_range, new_schedule.time_range)
    ]


def validate_schedule(schedule: DaySchedule) -> tuple[bool, Optional[str]]:
    """Returns (valid, error message)"""
    start, end = schedule.time_range.start, schedule.time_range.end
    if not start or not end:
        return False, "Start and end times are required"

    start_match, end_match = TIME_PATTERN.match(start), TIME_PATTERN.match(end)
    if not start_match or not end_match:
        return False, "Invalid time format"

    start_hours, start_minutes = int(start_match.group(1)), int(start_match.group(2))
    end_hours, end_minutes = int(end_match.group(1)), int(end_match.group(2))

    if not (0 <= start_hours <= 23 and 0 <= start_minutes <= 59):
        return False, "Invalid start time"
    if not (0 <= end_hours <= 23 and 0 <= end_minutes <= 59):
        return False, "Invalid end time"

    start_total = start_hours * 60 + start_minutes
    end_total = end_hours * 60 + end_minutes
    if end_total <= start_total:
        end_total += MINUTES_PER_DAY  # ends the next day

    if end_total - start_total > MINUTES_PER_DAY:
        return False, "Schedule duration cannot exceed 24 hours"

    return True, None


def format_time_range(time_range: TimeRange) -> str:
    return f"{time_range.start} - {time_range.end}"


def day_of_week_to_name(day_of_week: int, short: bool = False) -> str:
    names = WEEKDAY_SHORT_NAMES if short else WEEKDAY_NAMES
    if 0 <= day_of_week <= 6:
        return names[day_of_week]
    return "Unknown"


def to_hapio_weekday(day_of_week: int) -> str:
    """0 (Sunday) .. 6 (Saturday) to Hapio's weekday enum"""
    if 0 <= day_of_week <= 6:
        return WEEKDAYS[day_of_week]
    logger.warning(f"⚠️ Invalid day_of_week {day_of_week}, defaulting to monday")
    return "monday"


def from_hapio_weekday(weekday: Union[str, int]) -> int:
    """
    Hapio weekday back to 0 (Sunday) .. 6 (Saturday).

    Accepts the string enum and legacy numeric forms, where 7 is Sunday.
    Unknown values default to Monday.
    """
    if isinstance(weekday, int):
        if weekday == 7:
            return 0
        if 0 <= weekday <= 6:
            return weekday
        logger.warning(f"⚠️ Invalid numeric weekday {weekday}, defaulting to monday")
        return 1

    try:
        return WEEKDAYS.index(weekday.strip().lower())
    except ValueError:
        logger.warning(f"⚠️ Invalid weekday {weekday!r}, defaulting to monday")
        return 1


def minutes_to_iso8601(minutes: int) -> str:
    if minutes < 0:
        raise ValueError("Minutes must be non-negative")
    return f"PT{minutes}M"


def iso8601_to_minutes(duration: str) -> int:
    match = ISO_DURATION_PATTERN.search(duration or "")
    if not match:
        raise ValueError(f"Invalid ISO 8601 duration format: {duration}")
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours * 60 + minutes + round(seconds / 60)
