"""Tests for the reservation hold state machine."""

import asyncio

import pytest

from aura_studio.booking_flow import BookingApiError, HoldState, ReservationHold, SlotSelection
from aura_studio.booking_flow.reservation_hold import (
    ERROR_DISMISS_SECONDS,
    HOLD_EXPIRED_MESSAGE,
    HOLD_FAILED_MESSAGE,
    HOLD_UNCONFIRMED_MESSAGE,
    TICK_SECONDS,
)
from tests.conftest import FIXED_NOW, FakeSleep, drain

SLOT_A = SlotSelection(start_time="2026-01-02T15:00:00Z", event_type_id=4242, duration=60)
SLOT_B = SlotSelection(start_time="2026-01-02T16:00:00Z", event_type_id=4242, duration=60)


def make_hold(api, sleep) -> ReservationHold:
    return ReservationHold(api, sleep=sleep, clock=lambda: FIXED_NOW)


class TestAcquire:
    @pytest.mark.asyncio
    async def test_reserve_then_verify(self, fake_api):
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS, ERROR_DISMISS_SECONDS}))

        await hold.select(SLOT_A)
        assert hold.state == HoldState.HOLDING
        await hold.settle()

        assert hold.state == HoldState.HELD
        assert hold.reservation.id == "res_1"
        assert hold.seconds_left == 120
        assert hold.is_held_for(SLOT_A)
        assert not hold.is_held_for(SLOT_B)
        assert fake_api.calls == [("reserve", SLOT_A.key), ("verify", "res_1")]
        await hold.close()

    @pytest.mark.asyncio
    async def test_missing_expiry_defaults_to_two_minutes(self, fake_api):
        fake_api.reserve_results = [{"id": "res_x", "expiresAt": None}]
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS}))

        await hold.select(SLOT_A)
        await hold.settle()

        assert hold.seconds_left == 120
        await hold.close()

    @pytest.mark.asyncio
    async def test_selecting_new_slot_releases_previous_hold_first(self, fake_api):
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS, ERROR_DISMISS_SECONDS}))

        await hold.select(SLOT_A)
        await hold.settle()
        await hold.select(SLOT_B)
        await hold.settle()

        assert fake_api.calls == [
            ("reserve", SLOT_A.key),
            ("verify", "res_1"),
            ("release", "res_1"),
            ("reserve", SLOT_B.key),
            ("verify", "res_2"),
        ]
        assert hold.is_held_for(SLOT_B)
        await hold.close()

    @pytest.mark.asyncio
    async def test_late_reservation_for_superseded_slot_is_released(self, fake_api):
        gate = asyncio.Event()
        original_reserve = fake_api.reserve_slot

        async def slow_first_reserve(event_type_id, slot_start, slot_duration=None, timezone=None):
            # The provider creates the hold before the response is delayed
            result = await original_reserve(event_type_id, slot_start, slot_duration, timezone)
            if slot_start == SLOT_A.start_time:
                await gate.wait()
            return result

        fake_api.reserve_slot = slow_first_reserve
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS, ERROR_DISMISS_SECONDS}))

        await hold.select(SLOT_A)
        await drain()
        await hold.select(SLOT_B)
        await hold.settle()
        gate.set()
        await hold.drain_superseded()

        assert hold.is_held_for(SLOT_B)
        assert hold.reservation.id == "res_2"
        assert ("release", "res_1") in fake_api.calls
        assert ("verify", "res_1") not in fake_api.calls
        await hold.close()

    @pytest.mark.asyncio
    async def test_late_reservation_after_close_is_released(self, fake_api):
        gate = asyncio.Event()
        original_reserve = fake_api.reserve_slot

        async def slow_reserve(event_type_id, slot_start, slot_duration=None, timezone=None):
            result = await original_reserve(event_type_id, slot_start, slot_duration, timezone)
            await gate.wait()
            return result

        fake_api.reserve_slot = slow_reserve
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS}))

        await hold.select(SLOT_A)
        await drain()
        await hold.close()
        gate.set()
        await hold.drain_superseded()

        assert hold.state == HoldState.IDLE
        assert hold.reservation is None
        assert fake_api.calls[-1] == ("release", "res_1")

    @pytest.mark.asyncio
    async def test_reselecting_same_slot_keeps_one_hold(self, fake_api):
        gate = asyncio.Event()
        original_reserve = fake_api.reserve_slot
        first = True

        async def slow_first_reserve(event_type_id, slot_start, slot_duration=None, timezone=None):
            nonlocal first
            result = await original_reserve(event_type_id, slot_start, slot_duration, timezone)
            if first:
                first = False
                await gate.wait()
            return result

        fake_api.reserve_slot = slow_first_reserve
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS, ERROR_DISMISS_SECONDS}))

        await hold.select(SLOT_A)
        await drain()
        await hold.select(SLOT_A)
        await hold.settle()
        gate.set()
        await hold.drain_superseded()

        assert hold.is_held_for(SLOT_A)
        assert hold.reservation.id == "res_2"
        assert ("release", "res_1") in fake_api.calls
        await hold.close()


class TestRetries:
    @pytest.mark.asyncio
    async def test_capped_at_three_attempts_with_linear_backoff(self, fake_api):
        fake_api.reserve_results = [BookingApiError("busy", 503) for _ in range(5)]
        sleep = FakeSleep(block={ERROR_DISMISS_SECONDS})
        hold = make_hold(fake_api, sleep)

        await hold.select(SLOT_A)
        await hold.settle()

        assert hold.state == HoldState.ERROR
        assert hold.error == HOLD_FAILED_MESSAGE
        assert hold.attempts == 3
        assert [c for c in fake_api.calls if c[0] == "reserve"] == [("reserve", SLOT_A.key)] * 3
        assert sleep.calls[:2] == [1.5, 3.0]
        await hold.close()

    @pytest.mark.asyncio
    async def test_recovers_on_second_attempt(self, fake_api):
        fake_api.reserve_results = [BookingApiError("busy", 503), {"id": "res_ok", "expiresAt": None}]
        sleep = FakeSleep(block={TICK_SECONDS})
        hold = make_hold(fake_api, sleep)

        await hold.select(SLOT_A)
        await hold.settle()

        assert hold.state == HoldState.HELD
        assert hold.reservation.id == "res_ok"
        assert sleep.calls[0] == 1.5
        await hold.close()

    @pytest.mark.asyncio
    async def test_failed_verification_releases_and_errors(self, fake_api):
        fake_api.verify_result = {"valid": False}
        hold = make_hold(fake_api, FakeSleep(block={ERROR_DISMISS_SECONDS}))

        await hold.select(SLOT_A)
        await hold.settle()

        assert hold.state == HoldState.ERROR
        assert hold.error == HOLD_UNCONFIRMED_MESSAGE
        assert hold.reservation is None
        assert ("release", "res_1") in fake_api.calls
        await hold.close()


class TestTimers:
    @pytest.mark.asyncio
    async def test_countdown_expiry_releases_and_clears_slot(self, fake_api):
        fake_api.reserve_results = [{"id": "res_short", "expiresAt": "2026-01-01T15:00:03Z"}]
        hold = make_hold(fake_api, FakeSleep(block={ERROR_DISMISS_SECONDS}))

        await hold.select(SLOT_A)
        await hold.settle()
        assert hold.seconds_left == 3
        await drain()

        assert hold.state == HoldState.IDLE
        assert hold.slot is None
        assert hold.reservation is None
        assert hold.seconds_left == 0
        assert hold.error == HOLD_EXPIRED_MESSAGE
        assert fake_api.calls[-1] == ("release", "res_short")
        await hold.close()

    @pytest.mark.asyncio
    async def test_error_message_auto_clears(self, fake_api):
        fake_api.verify_result = {"valid": False}
        sleep = FakeSleep()
        hold = make_hold(fake_api, sleep)

        await hold.select(SLOT_A)
        await hold.settle()
        await drain()

        assert ERROR_DISMISS_SECONDS in sleep.calls
        assert hold.error is None
        assert hold.state == HoldState.ERROR
        await hold.close()

    @pytest.mark.asyncio
    async def test_close_releases_hold(self, fake_api):
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS}))

        await hold.select(SLOT_A)
        await hold.settle()
        await hold.close()
        await drain()

        assert hold.state == HoldState.IDLE
        assert hold.slot is None
        assert fake_api.calls[-1] == ("release", "res_1")

    @pytest.mark.asyncio
    async def test_release_failure_is_ignored(self, fake_api):
        async def failing_release(reservation_id):
            raise BookingApiError("gone", 404)

        fake_api.release_reservation = failing_release
        hold = make_hold(fake_api, FakeSleep(block={TICK_SECONDS}))

        await hold.select(SLOT_A)
        await hold.settle()
        await hold.select(SLOT_B)
        await hold.settle()

        assert hold.is_held_for(SLOT_B)
        await hold.close()
