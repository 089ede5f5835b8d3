from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.availability import day_of_week
from clinicflow.core.schemas import AvailabilityWindow, BookedInterval, BreakPeriod
from clinicflow.models import Appointment, ProviderAvailability, ProviderBreak


async def get_availability_windows(
    db: AsyncSession, tenant_id: str, provider_id: str, dow: int, provider_type: str = "doctor"
) -> list[AvailabilityWindow]:
    result = await db.execute(
        select(ProviderAvailability)
        .where(
            ProviderAvailability.tenant_id == tenant_id,
            ProviderAvailability.provider_id == provider_id,
            ProviderAvailability.provider_type == provider_type,
            ProviderAvailability.day_of_week == dow,
            ProviderAvailability.is_active.is_(True),
        )
        .order_by(ProviderAvailability.start_time)
    )
    return [
        AvailabilityWindow(
            day_of_week=row.day_of_week,
            start_time=row.start_time,
            end_time=row.end_time,
            lunch_start=row.lunch_start,
            lunch_end=row.lunch_end,
        )
        for row in result.scalars().all()
    ]


async def get_breaks(db: AsyncSession, tenant_id: str, provider_id: str, dow: int) -> list[BreakPeriod]:
    result = await db.execute(
        select(ProviderBreak).where(
            ProviderBreak.tenant_id == tenant_id,
            ProviderBreak.provider_id == provider_id,
            ProviderBreak.day_of_week == dow,
            ProviderBreak.is_active.is_(True),
        )
    )
    return [
        BreakPeriod(
            day_of_week=row.day_of_week,
            start_time=row.start_time,
            end_time=row.end_time,
            description=row.description,
        )
        for row in result.scalars().all()
    ]


async def get_booked_intervals(
    db: AsyncSession, tenant_id: str, provider_id: str, on_date: date
) -> list[BookedInterval]:
    """Non-cancelled appointments of a provider on a date, whatever the provider type."""
    result = await db.execute(
        select(Appointment).where(
            Appointment.tenant_id == tenant_id,
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == on_date,
            Appointment.status != "cancelled",
        )
    )
    return [
        BookedInterval(start_time=a.start_time, end_time=a.end_time, status=a.status)
        for a in result.scalars().all()
    ]


async def load_day_schedule(
    db: AsyncSession, tenant_id: str, provider_id: str, on_date: date, provider_type: str = "doctor"
) -> tuple[list[AvailabilityWindow], list[BreakPeriod], list[BookedInterval]]:
    """Return (windows, breaks, booked) for one provider and date."""
    dow = day_of_week(on_date)
    windows = await get_availability_windows(db, tenant_id, provider_id, dow, provider_type)
    if not windows:
        return [], [], []
    breaks = await get_breaks(db, tenant_id, provider_id, dow)
    booked = await get_booked_intervals(db, tenant_id, provider_id, on_date)
    return windows, breaks, booked


async def create_appointment(db: AsyncSession, **fields) -> Appointment:
    appointment = Appointment(**fields)
    db.add(appointment)
    await db.flush()
    return appointment


async def get_appointment(db: AsyncSession, appointment_id: UUID) -> Appointment | None:
    result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
    return result.scalar_one_or_none()


async def update_appointment(db: AsyncSession, appointment: Appointment, fields: dict) -> Appointment:
    for key, value in fields.items():
        setattr(appointment, key, value)
    await db.flush()
    return appointment
