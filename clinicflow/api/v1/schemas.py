from __future__ import annotations

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AppointmentCreateRequest(BaseModel):
    tenant_id: str
    provider_id: str
    provider_type: Literal["doctor", "member"] = "doctor"
    service_id: str | None = None
    patient_id: str | None = None
    appointment_date: dt.date
    start_time: dt.time
    end_time: dt.time | None = None
    duration_minutes: int | None = Field(default=None, gt=0)
    patient_first_name: str
    patient_last_name: str = ""
    patient_email: str | None = None
    patient_phone: str | None = None


class AppointmentUpdateRequest(BaseModel):
    status: Literal["pending", "confirmed", "in_progress", "completed", "cancelled"] | None = None
    appointment_date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    provider_id: str | None = None


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: str
    provider_id: str
    provider_type: str
    service_id: str | None
    patient_id: str | None
    appointment_date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: str


class FlowErrorDetail(BaseModel):
    error: str
    step: str | None = None
    errors: list[str] | None = None


class FlowErrorResponse(BaseModel):
    detail: FlowErrorDetail
