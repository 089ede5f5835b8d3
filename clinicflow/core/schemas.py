from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _coerce_clock(value: object) -> object:
    # YAML 1.1 reads unquoted 10:30 as the sexagesimal int 630, which is
    # already minutes since midnight.
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return f"{value // 60:02d}:{value % 60:02d}"
    if isinstance(value, dt.time):
        return value.strftime("%H:%M")
    return value


class _ClockModel(BaseModel):
    @field_validator("start_time", "end_time", "lunch_start", "lunch_end", mode="before", check_fields=False)
    @classmethod
    def _clock(cls, value: object) -> object:
        return _coerce_clock(value)


class AvailabilityWindow(_ClockModel):
    """Weekly window for one weekday; day_of_week uses 0=Sunday."""

    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    lunch_start: Optional[str] = None
    lunch_end: Optional[str] = None


class BreakPeriod(_ClockModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    description: Optional[str] = None


class BookedInterval(_ClockModel):
    start_time: str
    end_time: str
    status: str = "pending"


class AvailableSlot(BaseModel):
    date: dt.date
    day_of_week: int
    day_name: str
    start_time: str
    end_time: str
    is_preferred: bool = False


class DailySlots(BaseModel):
    date: dt.date
    day_of_week: int
    day_name: str
    slot_count: int
    slots: list[AvailableSlot] = Field(default_factory=list)


class SlotSuggestion(BaseModel):
    start: dt.date
    end: dt.date
    duration_minutes: int
    total_slots: int = 0
    days: list[DailySlots] = Field(default_factory=list)
    next_available: list[AvailableSlot] = Field(default_factory=list)


class ScheduledAppointment(BookedInterval):
    date: dt.date


class ProviderSchedule(BaseModel):
    """One provider's entry in a schedule YAML file."""

    id: str
    provider_type: Literal["doctor", "member"] = "doctor"
    windows: list[AvailabilityWindow] = Field(default_factory=list)
    breaks: list[BreakPeriod] = Field(default_factory=list)
    appointments: list[ScheduledAppointment] = Field(default_factory=list)

    def booked_on(self, on_date: dt.date) -> list[BookedInterval]:
        return [a for a in self.appointments if a.date == on_date]


class ScheduleFile(BaseModel):
    tenant_id: str = ""
    default_duration_minutes: int = 30
    providers: list[ProviderSchedule] = Field(default_factory=list)

    def provider(self, provider_id: str) -> ProviderSchedule | None:
        for p in self.providers:
            if p.id == provider_id:
                return p
        return None
