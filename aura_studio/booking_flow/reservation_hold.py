"""
Reservation hold state machine.

A hold is a short provider-side lock on the selected slot:

    idle -> holding -> held -> (error | idle)

Each selection gets its own generation number. In-flight reserve/verify requests are
never cancelled: responses that arrive after the user has moved on to another
slot are discarded and whatever they reserved is released. Only timers
(countdown, error dismiss) are cancelled.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from .api_client import BookingApiClient, BookingApiError
from .models import Reservation, SlotSelection

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 1.5
ERROR_DISMISS_SECONDS = 5
TICK_SECONDS = 1

HOLD_FAILED_MESSAGE = "Failed to hold this time slot. Try another time."
HOLD_UNCONFIRMED_MESSAGE = "Could not confirm the hold, please reselect"
HOLD_EXPIRED_MESSAGE = "Your hold expired. Please select a time again."

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


class HoldState(str, Enum):
    IDLE = "idle"
    HOLDING = "holding"
    HELD = "held"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationHold:
    def __init__(
        self,
        client: BookingApiClient,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _utcnow,
    ):
        self.client = client
        self._sleep = sleep
        self._clock = clock

        self.state = HoldState.IDLE
        self.slot: Optional[SlotSelection] = None
        self.reservation: Optional[Reservation] = None
        self.seconds_left = 0
        self.error: Optional[str] = None
        self.attempts = 0

        self._active_key: Optional[str] = None
        self._generation = 0
        self._hold_task: Optional[asyncio.Task] = None
        self._superseded: set[asyncio.Task] = set()
        self._countdown_task: Optional[asyncio.Task] = None
        self._dismiss_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_held_for(self, slot: Optional[SlotSelection]) -> bool:
        """True when a verified reservation exists for exactly this slot"""
        return (
            slot is not None
            and self.state == HoldState.HELD
            and self.reservation is not None
            and self._active_key == slot.key
        )

    async def select(self, slot: SlotSelection) -> None:
        """Drop any current hold, then start holding `slot`"""
        self._active_key = None
        self._generation += 1
        self._retire_hold_task()
        self._cancel(self._countdown_task)
        await self._release_current()

        self.slot = slot
        self._active_key = slot.key
        self.state = HoldState.HOLDING
        self.error = None
        self.attempts = 0
        self.seconds_left = 0
        self._hold_task = asyncio.create_task(self._acquire(slot, self._generation))

    async def settle(self) -> None:
        """Wait for the in-flight reserve/verify sequence, if any"""
        if self._hold_task is not None:
            await self._hold_task

    async def release(self) -> None:
        self._active_key = None
        self._generation += 1
        self._retire_hold_task()
        self._cancel(self._countdown_task)
        await self._release_current()
        self.slot = None
        self.seconds_left = 0
        self.state = HoldState.IDLE

    async def close(self) -> None:
        """Unmount cleanup: release the hold and stop every timer"""
        await self.release()
        self._cancel(self._dismiss_task)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel(self, task: Optional[asyncio.Task]) -> None:
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _retire_hold_task(self) -> None:
        """Keep a superseded acquire alive so it can release what it reserved"""
        task, self._hold_task = self._hold_task, None
        if task is not None and not task.done():
            self._superseded.add(task)
            task.add_done_callback(self._superseded.discard)

    async def drain_superseded(self) -> None:
        """Wait for superseded attempts to finish their cleanup"""
        if self._superseded:
            await asyncio.gather(*list(self._superseded), return_exceptions=True)

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    async def _release_quietly(self, reservation_id: str) -> None:
        try:
            await self.client.release_reservation(reservation_id)
            logger.info(f"🔓 Released reservation {reservation_id}")
        except BookingApiError as e:
            logger.warning(f"⚠️ Failed to release reservation {reservation_id}: {e}")

    async def _release_current(self) -> None:
        reservation, self.reservation = self.reservation, None
        if reservation is not None:
            await self._release_quietly(reservation.id)

    async def _acquire(self, slot: SlotSelection, generation: int) -> None:
        key = slot.key

        for attempt in range(1, MAX_ATTEMPTS + 1):
            self.attempts = attempt
            try:
                data = await self.client.reserve_slot(
                    slot.event_type_id, slot.start_time, slot.duration, slot.timezone
                )
            except BookingApiError as e:
                if self._is_stale(generation):
                    return
                logger.warning(f"⚠️ Reserve attempt {attempt}/{MAX_ATTEMPTS} failed for {key}: {e}")
                if attempt < MAX_ATTEMPTS:
                    await self._sleep(RETRY_BACKOFF_SECONDS * attempt)
                    if self._is_stale(generation):
                        return
                continue

            reservation = Reservation.from_api(data)
            if self._is_stale(generation):
                await self._release_quietly(reservation.id)
                return

            verified = await self._verify(reservation)
            if self._is_stale(generation):
                await self._release_quietly(reservation.id)
                return

            if not verified:
                await self._release_quietly(reservation.id)
                self._fail(HOLD_UNCONFIRMED_MESSAGE)
                return

            self.reservation = reservation
            self.state = HoldState.HELD
            self.seconds_left = reservation.seconds_remaining(self._clock())
            logger.info(f"🔒 Holding {key} as {reservation.id} ({self.seconds_left}s)")
            self._countdown_task = asyncio.create_task(self._run_countdown(generation))
            return

        self._fail(HOLD_FAILED_MESSAGE)

    async def _verify(self, reservation: Reservation) -> bool:
        try:
            result = await self.client.verify_reservation(reservation.id)
        except BookingApiError as e:
            logger.warning(f"⚠️ Could not verify reservation {reservation.id}: {e}")
            return False
        return bool(result and result.get("valid"))

    async def _run_countdown(self, generation: int) -> None:
        while self.seconds_left > 0:
            await self._sleep(TICK_SECONDS)
            if self._is_stale(generation):
                return
            self.seconds_left -= 1
        await self._expire()

    async def _expire(self) -> None:
        logger.info(f"⏰ Hold expired for {self._active_key}")
        await self._release_current()
        self.slot = None
        self._active_key = None
        self._generation += 1
        self.state = HoldState.IDLE
        self._show_error(HOLD_EXPIRED_MESSAGE)

    def _fail(self, message: str) -> None:
        self.reservation = None
        self.state = HoldState.ERROR
        self._show_error(message)

    def _show_error(self, message: str) -> None:
        self.error = message
        self._cancel(self._dismiss_task)
        self._dismiss_task = asyncio.create_task(self._dismiss_error(message))

    async def _dismiss_error(self, message: str) -> None:
        await self._sleep(ERROR_DISMISS_SECONDS)
        # A newer message keeps its own timer
        if self.error == message:
            self.error = None
