"""Availability paging and day grouping for the slot picker"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

from ..config import STUDIO_TIMEZONE
from .api_client import BookingApiClient
from .models import parse_iso

MOBILE_BREAKPOINT = 768
MOBILE_WINDOW_DAYS = 3
DESKTOP_WINDOW_DAYS = 7


def window_days(viewport_width: int) -> int:
    return MOBILE_WINDOW_DAYS if viewport_width < MOBILE_BREAKPOINT else DESKTOP_WINDOW_DAYS


def page_start(page: int, days: int, today: Optional[date] = None) -> date:
    return (today or date.today()) + timedelta(days=page * days)


async def fetch_page(
    client: BookingApiClient,
    slug: str,
    page: int,
    viewport_width: int,
    timezone: str = STUDIO_TIMEZONE,
    today: Optional[date] = None,
) -> dict:
    days = window_days(viewport_width)
    start = page_start(page, days, today)
    return await client.get_availability(slug, start.isoformat(), days, timezone)


def format_slot_label(moment: datetime) -> str:
    """9:30 AM style label"""
    return moment.strftime("%I:%M %p").lstrip("0")


@dataclass
class DaySlots:
    day: date
    label: str
    slots: list[dict[str, Any]] = field(default_factory=list)


def group_slots_by_day(slots: list[dict[str, Any]], timezone: str = STUDIO_TIMEZONE) -> list[DaySlots]:
    """
    Group raw availability slots by calendar day in the studio timezone.

    Each slot dict gains `label` (e.g. "9:30 AM"); unparsable slots are skipped.
    """
    tz = ZoneInfo(timezone)
    localized = []
    for slot in slots:
        moment = parse_iso(slot.get("slot"))
        if moment is None or moment.tzinfo is None:
            continue
        localized.append((moment.astimezone(tz), slot))

    localized.sort(key=lambda item: item[0])

    days: dict[date, DaySlots] = {}
    for moment, slot in localized:
        day = moment.date()
        if day not in days:
            days[day] = DaySlots(day=day, label=f"{moment:%a, %b} {moment.day}")
        days[day].slots.append({**slot, "label": format_slot_label(moment)})

    return list(days.values())
