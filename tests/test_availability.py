from __future__ import annotations

from datetime import date, datetime

import pytest

from clinicflow.core.availability import (
    day_of_week,
    get_date_range_end,
    normalize_time,
    parse_time,
    resolve_slots,
    suggest_slots,
)
from clinicflow.core.schemas import AvailabilityWindow, BookedInterval, BreakPeriod

MONDAY = date(2024, 6, 3)
TUESDAY = date(2024, 6, 4)


def _window(dow: int = 1, start: str = "09:00", end: str = "12:00", **kw) -> AvailabilityWindow:
    return AvailabilityWindow(day_of_week=dow, start_time=start, end_time=end, **kw)


def test_day_of_week_uses_sunday_zero():
    assert day_of_week(date(2024, 6, 2)) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2024, 6, 8)) == 6


def test_parse_time_accepts_seconds_and_rejects_garbage():
    assert parse_time("09:30") == 570
    assert parse_time("09:30:00") == 570
    assert normalize_time("9:05") == "09:05"
    with pytest.raises(ValueError):
        parse_time("nine")
    with pytest.raises(ValueError):
        parse_time("10:75")


def test_lunch_and_booking_are_excluded():
    windows = [_window(start="09:00", end="17:00", lunch_start="13:00", lunch_end="14:00")]
    booked = [BookedInterval(start_time="10:00", end_time="10:30", status="confirmed")]

    slots = resolve_slots(windows, booked, MONDAY, 30)

    assert "10:00" not in slots
    assert "13:00" not in slots
    assert "13:30" not in slots
    assert "12:30" in slots
    assert "14:00" in slots
    assert slots[0] == "09:00"
    assert slots[-1] == "16:30"
    assert len(slots) == 13


def test_cancelled_booking_does_not_block():
    windows = [_window(start="09:00", end="10:00")]
    booked = [BookedInterval(start_time="09:00", end_time="09:30", status="cancelled")]

    assert resolve_slots(windows, booked, MONDAY, 30) == ["09:00", "09:30"]


def test_day_without_window_is_empty():
    assert resolve_slots([_window(dow=1)], [], TUESDAY, 30) == []


def test_slot_must_fit_inside_window():
    windows = [_window(start="09:00", end="10:00")]

    assert resolve_slots(windows, [], MONDAY, 45) == ["09:00"]
    assert resolve_slots(windows, [], MONDAY, 90) == []


def test_partial_overlap_with_booking_blocks_candidate():
    windows = [_window(start="09:00", end="11:00")]
    booked = [BookedInterval(start_time="09:45", end_time="10:15")]

    assert resolve_slots(windows, booked, MONDAY, 30) == ["09:00", "10:30"]


def test_adjacent_booking_does_not_block():
    windows = [_window(start="09:00", end="10:00")]
    booked = [BookedInterval(start_time="09:30", end_time="10:00")]

    assert resolve_slots(windows, booked, MONDAY, 30) == ["09:00"]


def test_seconds_in_stored_times_are_accepted():
    windows = [_window(start="09:00:00", end="10:00:00")]
    booked = [BookedInterval(start_time="09:00:00", end_time="09:30:00")]

    assert resolve_slots(windows, booked, MONDAY, 30) == ["09:30"]


def test_breaks_apply_only_on_their_weekday():
    windows = [_window(dow=1, start="09:00", end="10:00"), _window(dow=2, start="09:00", end="10:00")]
    breaks = [BreakPeriod(day_of_week=1, start_time="09:00", end_time="09:30", description="Rounds")]

    assert resolve_slots(windows, [], MONDAY, 30, breaks=breaks) == ["09:30"]
    assert resolve_slots(windows, [], TUESDAY, 30, breaks=breaks) == ["09:00", "09:30"]


def test_multiple_windows_are_merged_and_sorted():
    windows = [_window(start="15:00", end="16:00"), _window(start="09:00", end="10:00")]

    assert resolve_slots(windows, [], MONDAY, 30) == ["09:00", "09:30", "15:00", "15:30"]


def test_same_day_slots_respect_buffer_from_now():
    windows = [_window(start="09:00", end="12:00")]
    now = datetime(2024, 6, 3, 9, 40)

    slots = resolve_slots(windows, [], MONDAY, 30, now=now)

    assert slots == ["10:30", "11:00", "11:30"]


def test_now_on_another_date_does_not_filter():
    windows = [_window(start="09:00", end="10:00")]
    now = datetime(2024, 6, 2, 23, 0)

    assert resolve_slots(windows, [], MONDAY, 30, now=now) == ["09:00", "09:30"]


def test_max_slots_caps_result():
    assert resolve_slots([_window()], [], MONDAY, 30, max_slots=2) == ["09:00", "09:30"]


def test_non_positive_duration_is_rejected():
    with pytest.raises(ValueError):
        resolve_slots([_window()], [], MONDAY, 0)


def test_window_from_yaml_sexagesimal_int_is_coerced():
    # YAML 1.1 parses unquoted 9:00 as 540.
    window = AvailabilityWindow(day_of_week=1, start_time=540, end_time=600)

    assert window.start_time == "09:00"
    assert window.end_time == "10:00"


def test_get_date_range_end():
    assert get_date_range_end(MONDAY, "next_week") == date(2024, 6, 10)
    assert get_date_range_end(MONDAY, "two_weeks") == date(2024, 6, 17)
    assert get_date_range_end(date(2024, 1, 31), "month") == date(2024, 2, 29)
    assert get_date_range_end(date(2024, 12, 15), "month") == date(2025, 1, 15)
    with pytest.raises(ValueError):
        get_date_range_end(MONDAY, "year")


def test_suggest_slots_groups_by_day_and_marks_first_preferred():
    windows = [_window(dow=1, start="09:00", end="10:00"), _window(dow=3, start="15:00", end="16:00")]
    booked_by_date = {MONDAY: [BookedInterval(start_time="09:00", end_time="09:30")]}

    suggestion = suggest_slots(windows, booked_by_date, MONDAY, 30, suggestion_type="next_week")

    assert suggestion.start == MONDAY
    assert suggestion.end == date(2024, 6, 10)
    # Mon 3rd: 09:30; Wed 5th: 15:00, 15:30; Mon 10th: 09:00, 09:30
    assert [d.date for d in suggestion.days] == [MONDAY, date(2024, 6, 5), date(2024, 6, 10)]
    assert suggestion.total_slots == 5
    assert suggestion.days[0].day_name == "Lunes"
    assert suggestion.days[1].day_name == "Miércoles"
    assert suggestion.days[1].slots[0].end_time == "15:30"
    assert [s.is_preferred for s in suggestion.next_available] == [True, False, False, False, False]
    assert suggestion.next_available[0].start_time == "09:30"


def test_suggest_slots_after_business_hours_starts_tomorrow():
    windows = [_window(dow=1), _window(dow=2)]
    now = datetime(2024, 6, 3, 18, 30)

    suggestion = suggest_slots(windows, {}, MONDAY, 60, now=now)

    assert suggestion.start == TUESDAY
    assert suggestion.days[0].date == TUESDAY
