from __future__ import annotations

import logging
from datetime import date, time
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.config import get_settings
from clinicflow.core.availability import format_time, parse_time, resolve_slots
from clinicflow.core.crud import create_appointment, get_appointment, load_day_schedule, update_appointment
from clinicflow.db import get_db

from .schemas import AppointmentCreateRequest, AppointmentResponse, AppointmentUpdateRequest


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["scheduling"])


@router.get("/availability", response_model=list[str])
async def get_availability(
    doctor_id: str | None = Query(default=None, alias="doctorId"),
    on_date: str | None = Query(default=None, alias="date"),
    tenant_id: str | None = Query(default=None, alias="tenantId"),
    provider_type: Literal["doctor", "member"] = Query(default="doctor", alias="providerType"),
    duration_minutes: int | None = Query(default=None, alias="durationMinutes", gt=0),
    db: AsyncSession = Depends(get_db),
) -> list[str]:
    """Free start times for one provider on one date, as "HH:MM" strings."""
    if not doctor_id or not on_date or not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required parameters: doctorId, date, tenantId",
        )
    try:
        day = date.fromisoformat(on_date)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid date: {on_date}") from None

    windows, breaks, booked = await load_day_schedule(db, tenant_id, doctor_id, day, provider_type)
    duration = duration_minutes or get_settings().default_slot_minutes
    slots = resolve_slots(windows, booked, day, duration, breaks=breaks)
    logger.debug("Availability %s/%s on %s (%s): %d slots", tenant_id, doctor_id, day, provider_type, len(slots))
    return slots


@router.post("/appointments", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment_endpoint(
    payload: AppointmentCreateRequest,
    db: AsyncSession = Depends(get_db),
) -> AppointmentResponse:
    end_time = payload.end_time
    if end_time is None:
        duration = payload.duration_minutes or get_settings().default_slot_minutes
        end_time = _shift(payload.start_time, duration)

    fields = payload.model_dump(exclude={"duration_minutes", "end_time"})
    fields["end_time"] = end_time
    fields["status"] = "pending"

    try:
        appointment = await create_appointment(db, **fields)
    except IntegrityError as e:
        logger.info(
            "Slot already booked: provider=%s date=%s start=%s",
            payload.provider_id,
            payload.appointment_date,
            payload.start_time,
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Time slot is already booked") from e

    logger.info("Created appointment %s for provider %s", appointment.id, appointment.provider_id)
    return AppointmentResponse.model_validate(appointment)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment_endpoint(
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    db: AsyncSession = Depends(get_db),
) -> AppointmentResponse:
    appointment = await get_appointment(db, appointment_id)
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")

    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    # Moving the start keeps the original length unless an end is given.
    if "start_time" in fields and "end_time" not in fields:
        length = parse_time(appointment.end_time.strftime("%H:%M")) - parse_time(
            appointment.start_time.strftime("%H:%M")
        )
        fields["end_time"] = _shift(fields["start_time"], length)

    try:
        appointment = await update_appointment(db, appointment, fields)
    except IntegrityError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Time slot is already booked") from e

    return AppointmentResponse.model_validate(appointment)


def _shift(start: time, minutes: int) -> time:
    end = parse_time(start.strftime("%H:%M")) + minutes
    if end >= 24 * 60:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Appointment must end on the same day")
    return time.fromisoformat(format_time(end))
