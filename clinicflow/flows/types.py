from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field


class FlowEvent(str, Enum):
    APPOINTMENT_CREATED = "appointment.created"
    APPOINTMENT_CONFIRMED = "appointment.confirmed"
    APPOINTMENT_CANCELLED = "appointment.cancelled"
    PAYMENT_INITIATED = "payment.initiated"
    PAYMENT_COMPLETED = "payment.completed"
    PAYMENT_FAILED = "payment.failed"
    NOTIFICATION_SENT = "notification.sent"
    USER_AUTHENTICATED = "user.authenticated"
    DOCTOR_AVAILABILITY_UPDATED = "doctor.availability_updated"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TOGGLE_STATUS = "toggle_status"


AppointmentStatus = Literal["pending", "confirmed", "in_progress", "completed", "cancelled"]


class UserInfo(BaseModel):
    id: str
    email: str
    role: Literal["admin_tenant", "doctor", "patient", "member"] = "patient"
    tenant_id: Optional[str] = None


class TenantInfo(BaseModel):
    id: str
    name: str = ""
    type: Literal["clinic", "spa", "consultorio", "wellness"] = "clinic"


class PatientInfo(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class AppointmentInfo(BaseModel):
    id: Optional[str] = None
    provider_id: str = Field(validation_alias=AliasChoices("provider_id", "doctor_id"))
    provider_type: Literal["doctor", "member"] = "doctor"
    patient_id: Optional[str] = None
    patient: Optional[PatientInfo] = None
    service_id: Optional[str] = None
    date: str
    time: str
    duration_minutes: Optional[int] = None
    status: Optional[AppointmentStatus] = None


class PaymentInfo(BaseModel):
    amount: float = 0
    currency: Optional[str] = None
    status: Literal["pending", "processing", "completed", "failed"] = "pending"
    reference_id: Optional[str] = None


class Notification(BaseModel):
    type: Literal["confirmation", "reminder", "cancellation"]
    channel: Literal["email", "whatsapp", "sms"]
    recipient: str
    sent: bool = False


class ServiceInfo(BaseModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    price: Optional[float] = None
    category_id: Optional[str] = None
    is_active: bool = True
    tenant_id: str = ""


class CategoryInfo(BaseModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    tenant_id: str = ""
    parent_id: Optional[str] = None
    is_active: bool = True


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


class FlowContext(BaseModel):
    """Data threaded through a flow. Steps return a new context instead of mutating this one."""

    user: Optional[UserInfo] = None
    tenant: Optional[TenantInfo] = None
    appointment: Optional[AppointmentInfo] = None
    payment: Optional[PaymentInfo] = None
    notifications: Optional[list[Notification]] = None
    service: Optional[ServiceInfo] = None
    category: Optional[CategoryInfo] = None
    operation: Optional[Operation] = None
    validation_result: Optional[ValidationResult] = None


StepAction = Callable[[FlowContext], Awaitable[FlowContext]]
StepValidator = Callable[[FlowContext], bool]


@dataclass
class FlowStep:
    name: str
    action: StepAction
    validate: StepValidator | None = None
    rollback: StepAction | None = None


@dataclass
class BusinessFlow:
    name: str
    steps: list[FlowStep]
    context: FlowContext = field(default_factory=FlowContext)
