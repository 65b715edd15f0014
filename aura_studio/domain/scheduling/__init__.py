"""
Scheduling Domain

Validation and conversion helpers behind the admin Hapio editors. The
provider owns the actual schedules; this package only checks recurring
schedule blocks before they are sent and translates between our weekday
and duration formats and Hapio's.
"""

from .hapio_services import to_hapio_service_payload, with_duration_minutes, with_duration_minutes_list
from .recurring_blocks import normalize_block_payload, validate_recurring_block
from .schedule_utils import (
    DaySchedule,
    InvalidFieldsError,
    TimeRange,
    detect_overlaps,
    from_hapio_weekday,
    iso8601_to_minutes,
    minutes_to_iso8601,
    time_ranges_overlap,
    to_hapio_weekday,
    validate_schedule,
)

__all__ = [
    "DaySchedule",
    "InvalidFieldsError",
    "TimeRange",
    "detect_overlaps",
    "from_hapio_weekday",
    "iso8601_to_minutes",
    "minutes_to_iso8601",
    "normalize_block_payload",
    "time_ranges_overlap",
    "to_hapio_service_payload",
    "to_hapio_weekday",
    "validate_recurring_block",
    "validate_schedule",
    "with_duration_minutes",
    "with_duration_minutes_list",
]
