"""
Availability Resolver — bookable start times for one provider on one date.

All times are tenant-local wall-clock values compared as minutes since
midnight. Nothing here converts timezones: a 10:00 window is 10:00 on the
tenant's calendar, whatever the server clock says.

Usage:
    slots = resolve_slots(windows, booked, date(2024, 6, 1), duration_minutes=30)
    -> ["09:00", "09:30", ...]
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta

from clinicflow.core.schemas import (
    AvailabilityWindow,
    AvailableSlot,
    BookedInterval,
    BreakPeriod,
    DailySlots,
    SlotSuggestion,
)

logger = logging.getLogger(__name__)

DAY_NAMES_ES = {
    0: "Domingo",
    1: "Lunes",
    2: "Martes",
    3: "Miércoles",
    4: "Jueves",
    5: "Viernes",
    6: "Sábado",
}

SUGGESTION_TYPES = ("next_week", "two_weeks", "month")

# Same-day bookings must start at least this far in the future.
SAME_DAY_BUFFER_MINUTES = 30
# After this hour a "today" search starts from tomorrow.
END_OF_BUSINESS_HOUR = 18
NEXT_AVAILABLE_LIMIT = 5

CANCELLED = "cancelled"


def parse_time(value: str) -> int:
    """Convert "HH:MM" or "HH:MM:SS" to minutes since midnight."""
    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time: {value!r}")
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """"9:00", "09:00:00" -> "09:00"."""
    return format_time(parse_time(value))


def day_of_week(on_date: date) -> int:
    """Weekday with 0=Sunday, matching stored availability rows."""
    return (on_date.weekday() + 1) % 7


def _overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    return start < other_end and end > other_start


def resolve_slots(
    windows: Iterable[AvailabilityWindow],
    booked: Iterable[BookedInterval],
    on_date: date,
    duration_minutes: int,
    breaks: Iterable[BreakPeriod] = (),
    now: datetime | None = None,
    max_slots: int | None = None,
) -> list[str]:
    """
    Return the ordered free start times ("HH:MM") for one provider on one date.

    Candidates step through each window of the date's weekday at
    ``duration_minutes`` granularity, from the window start while
    ``start + duration <= end``. A candidate is dropped when its interval
    overlaps the window's lunch break, any break of that weekday, or any
    booked interval whose status is not cancelled.

    Args:
        windows: Weekly windows of the provider (any weekdays).
        booked: Existing appointments of the provider on ``on_date``.
        on_date: Calendar date to resolve.
        duration_minutes: Service duration, also the candidate step.
        breaks: Extra recurring breaks (any weekdays).
        now: Tenant-local current time; on the same date, slots earlier than
            ``now`` plus a 30 minute buffer are skipped.
        max_slots: Optional cap on the number of returned slots.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    dow = day_of_week(on_date)
    day_windows = [w for w in windows if w.day_of_week == dow]
    if not day_windows:
        return []

    blocked: list[tuple[int, int]] = [
        (parse_time(b.start_time), parse_time(b.end_time))
        for b in booked
        if (b.status or "").lower() != CANCELLED
    ]
    blocked.extend(
        (parse_time(b.start_time), parse_time(b.end_time)) for b in breaks if b.day_of_week == dow
    )

    earliest = 0
    if now is not None and now.date() == on_date:
        earliest = now.hour * 60 + now.minute + SAME_DAY_BUFFER_MINUTES

    found: set[int] = set()
    for window in sorted(day_windows, key=lambda w: parse_time(w.start_time)):
        start = parse_time(window.start_time)
        end = parse_time(window.end_time)

        lunch: tuple[int, int] | None = None
        if window.lunch_start and window.lunch_end:
            lunch = (parse_time(window.lunch_start), parse_time(window.lunch_end))

        candidate = start
        while candidate + duration_minutes <= end:
            slot_end = candidate + duration_minutes
            if (
                candidate >= earliest
                and not (lunch and _overlaps(candidate, slot_end, *lunch))
                and not any(_overlaps(candidate, slot_end, b_start, b_end) for b_start, b_end in blocked)
            ):
                found.add(candidate)
            candidate += duration_minutes

    slots = [format_time(m) for m in sorted(found)]
    if max_slots is not None:
        slots = slots[:max_slots]
    return slots


def get_date_range_end(base_date: date, suggestion_type: str) -> date:
    if suggestion_type == "next_week":
        return base_date + timedelta(days=7)
    if suggestion_type == "two_weeks":
        return base_date + timedelta(days=14)
    if suggestion_type == "month":
        year = base_date.year + (1 if base_date.month == 12 else 0)
        month = 1 if base_date.month == 12 else base_date.month + 1
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(base_date.day, last_day))
    raise ValueError(f"Unknown suggestion type: {suggestion_type}")


def suggest_slots(
    windows: Sequence[AvailabilityWindow],
    booked_by_date: Mapping[date, Sequence[BookedInterval]],
    base_date: date,
    duration_minutes: int,
    suggestion_type: str = "next_week",
    breaks: Sequence[BreakPeriod] = (),
    now: datetime | None = None,
    max_per_day: int = 10,
) -> SlotSuggestion:
    """Free slots across a date range, grouped by day."""
    if now is not None and base_date == now.date() and now.hour >= END_OF_BUSINESS_HOUR:
        base_date = base_date + timedelta(days=1)
    end_date = get_date_range_end(base_date, suggestion_type)

    days: list[DailySlots] = []
    all_slots: list[AvailableSlot] = []

    current = base_date
    while current <= end_date:
        starts = resolve_slots(
            windows,
            booked_by_date.get(current, ()),
            current,
            duration_minutes,
            breaks=breaks,
            now=now,
            max_slots=max_per_day,
        )
        if starts:
            dow = day_of_week(current)
            slots = [
                AvailableSlot(
                    date=current,
                    day_of_week=dow,
                    day_name=DAY_NAMES_ES[dow],
                    start_time=s,
                    end_time=format_time(parse_time(s) + duration_minutes),
                )
                for s in starts
            ]
            days.append(
                DailySlots(
                    date=current,
                    day_of_week=dow,
                    day_name=DAY_NAMES_ES[dow],
                    slot_count=len(slots),
                    slots=slots,
                )
            )
            all_slots.extend(slots)
        current += timedelta(days=1)

    next_available = [
        slot.model_copy(update={"is_preferred": i == 0})
        for i, slot in enumerate(all_slots[:NEXT_AVAILABLE_LIMIT])
    ]
    logger.debug("Suggested %d slots between %s and %s", len(all_slots), base_date, end_date)

    return SlotSuggestion(
        start=base_date,
        end=end_date,
        duration_minutes=duration_minutes,
        total_slots=len(all_slots),
        days=days,
        next_available=next_available,
    )
