"""Tests for schedule validation and Hapio format conversion."""

import pytest

from aura_studio.domain.scheduling import (
    DaySchedule,
    InvalidFieldsError,
    TimeRange,
    detect_overlaps,
    from_hapio_weekday,
    iso8601_to_minutes,
    minutes_to_iso8601,
    normalize_block_payload,
    time_ranges_overlap,
    to_hapio_service_payload,
    to_hapio_weekday,
    validate_recurring_block,
    validate_schedule,
    with_duration_minutes,
)


def day(dow: int, start: str, end: str) -> DaySchedule:
    return DaySchedule(day_of_week=dow, time_range=TimeRange(start, end))


class TestOverlap:
    def test_plain_overlap(self):
        assert time_ranges_overlap(TimeRange("09:00", "12:00"), TimeRange("11:00", "13:00"))

    def test_touching_ranges_do_not_overlap(self):
        assert not time_ranges_overlap(TimeRange("09:00", "10:00"), TimeRange("10:00", "11:00"))

    def test_identical_ranges_overlap(self):
        assert time_ranges_overlap(TimeRange("09:00", "10:00"), TimeRange("09:00", "10:00"))

    def test_overnight_range(self):
        assert time_ranges_overlap(TimeRange("23:00", "01:00"), TimeRange("23:30", "00:30"))
        assert not time_ranges_overlap(TimeRange("23:00", "01:00"), TimeRange("09:00", "10:00"))

    def test_detect_only_same_weekday(self):
        existing = [day(1, "09:00", "12:00"), day(2, "09:00", "12:00")]
        overlaps = detect_overlaps(day(1, "11:00", "13:00"), existing)
        assert overlaps == [existing[0]]


class TestValidateSchedule:
    def test_valid(self):
        assert validate_schedule(day(1, "09:00", "17:00")) == (True, None)

    def test_missing_times(self):
        assert validate_schedule(day(1, "", "17:00")) == (False, "Start and end times are required")

    def test_bad_format(self):
        assert validate_schedule(day(1, "nine", "17:00")) == (False, "Invalid time format")

    def test_out_of_range(self):
        assert validate_schedule(day(1, "24:00", "17:00")) == (False, "Invalid start time")
        assert validate_schedule(day(1, "09:00", "17:60")) == (False, "Invalid end time")

    def test_overnight_is_allowed(self):
        assert validate_schedule(day(1, "22:00", "02:00")) == (True, None)


class TestConversions:
    def test_weekday_round_trip_names(self):
        assert to_hapio_weekday(0) == "sunday"
        assert to_hapio_weekday(9) == "monday"
        assert from_hapio_weekday("Saturday") == 6
        assert from_hapio_weekday(7) == 0
        assert from_hapio_weekday(42) == 1
        assert from_hapio_weekday("someday") == 1

    def test_durations(self):
        assert minutes_to_iso8601(90) == "PT90M"
        assert iso8601_to_minutes("PT1H30M") == 90
        assert iso8601_to_minutes("PT45M40S") == 46
        with pytest.raises(ValueError):
            minutes_to_iso8601(-1)

    def test_service_payload_minutes_to_iso(self):
        body = to_hapio_service_payload(
            {"name": "Facial", "duration_minutes": "45", "buffer_before_minutes": 0, "buffer_after_minutes": None}
        )
        assert body == {"name": "Facial", "duration": "PT45M", "buffer_time_before": "PT0M"}

    def test_service_payload_rejects_bad_minutes(self):
        with pytest.raises(InvalidFieldsError) as exc_info:
            to_hapio_service_payload({"duration_minutes": "an hour", "buffer_after_minutes": 7.5})
        assert set(exc_info.value.errors) == {"duration_minutes", "buffer_after_minutes"}

    def test_service_minutes_from_iso(self):
        assert with_duration_minutes({"id": "s", "duration": "PT1H"})["duration_minutes"] == 60
        assert with_duration_minutes({"id": "s", "duration": "soon"}) == {"id": "s", "duration": "soon"}


class TestRecurringBlocks:
    existing = [
        {"id": "b1", "weekday": "monday", "start_time": "09:00:00", "end_time": "12:00:00"},
        {"id": "b2", "weekday": "tuesday", "start_time": "09:00:00", "end_time": "12:00:00"},
    ]

    def test_normalize_day_of_week(self):
        body = normalize_block_payload({"day_of_week": 3, "start_time": "09:00"})
        assert body == {"weekday": "wednesday", "start_time": "09:00"}

    @pytest.mark.parametrize("value", ["mon", None, 7, -1, True])
    def test_normalize_rejects_bad_day_of_week(self, value):
        with pytest.raises(InvalidFieldsError) as exc_info:
            normalize_block_payload({"day_of_week": value})
        assert list(exc_info.value.errors) == ["weekday"]

    def test_normalize_weekday_forms(self):
        assert normalize_block_payload({"weekday": "Friday"}) == {"weekday": "friday"}
        assert normalize_block_payload({"weekday": 7}) == {"weekday": "sunday"}
        with pytest.raises(InvalidFieldsError):
            normalize_block_payload({"weekday": "someday"})

    def test_rejects_overlap_on_same_day(self):
        block = {"weekday": "monday", "start_time": "11:00", "end_time": "13:00"}
        errors = validate_recurring_block(block, self.existing)
        assert errors == {"start_time": ["Overlaps with existing block(s) on Monday: 09:00 - 12:00"]}

    def test_allows_other_day(self):
        block = {"weekday": "wednesday", "start_time": "11:00", "end_time": "13:00"}
        assert validate_recurring_block(block, self.existing) == {}

    def test_update_excludes_itself(self):
        block = {"weekday": "monday", "start_time": "08:00", "end_time": "12:30"}
        assert validate_recurring_block(block, self.existing, exclude_id="b1") == {}

    def test_invalid_time(self):
        block = {"weekday": "monday", "start_time": "13:00", "end_time": "25:00"}
        assert validate_recurring_block(block, []) == {"end_time": ["Invalid end time"]}

    def test_missing_weekday(self):
        errors = validate_recurring_block({"start_time": "09:00", "end_time": "10:00"}, [])
        assert errors == {"weekday": ["Weekday is required"]}
