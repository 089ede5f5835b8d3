"""
Appointment booking flow.

Steps:
1. validate_availability - requested time must be a free slot
2. create_appointment    - persist the appointment (rollback: cancel it)
3. initiate_payment      - local payment-intent stub
4. send_confirmation     - record the confirmation notification
"""

from __future__ import annotations

import logging
from uuid import uuid4

from clinicflow.config import get_settings
from clinicflow.core.availability import normalize_time
from clinicflow.flows.engine import FlowEngine
from clinicflow.flows.errors import PersistenceError, SlotUnavailableError, StepValidationError
from clinicflow.flows.types import (
    AppointmentInfo,
    BusinessFlow,
    FlowContext,
    FlowEvent,
    FlowStep,
    Notification,
    PatientInfo,
    PaymentInfo,
    TenantInfo,
    UserInfo,
)

logger = logging.getLogger(__name__)

FLOW_NAME = "appointment_booking"


def build_booking_flow(engine: FlowEngine, backend) -> BusinessFlow:
    """Build the booking flow; ``backend`` is a BackendAdapter (or anything with the same methods)."""

    async def validate_availability(ctx: FlowContext) -> FlowContext:
        appt = ctx.appointment
        if appt is None or ctx.tenant is None:
            raise StepValidationError("validate_availability", ["Appointment data required"])

        try:
            requested = normalize_time(appt.time)
        except ValueError:
            raise StepValidationError("validate_availability", [f"Invalid time: {appt.time}"]) from None

        slots = await backend.get_available_slots(
            appt.provider_id,
            appt.date,
            ctx.tenant.id,
            provider_type=appt.provider_type,
            duration_minutes=appt.duration_minutes,
        )
        free = set()
        for s in slots:
            try:
                free.add(normalize_time(s))
            except ValueError:
                logger.warning("Ignoring malformed slot from backend: %r", s)

        if requested not in free:
            raise SlotUnavailableError(appt.provider_id, appt.date, requested)

        return ctx.model_copy(
            update={"appointment": appt.model_copy(update={"time": requested, "status": "pending"})}
        )

    async def create_appointment(ctx: FlowContext) -> FlowContext:
        appt = ctx.appointment
        record = await backend.create_appointment(_appointment_payload(ctx))

        appointment_id = record.get("id")
        if not appointment_id:
            raise PersistenceError("Backend returned no appointment id")

        new_ctx = ctx.model_copy(
            update={"appointment": appt.model_copy(update={"id": str(appointment_id), "status": "pending"})}
        )
        engine.emit(FlowEvent.APPOINTMENT_CREATED, new_ctx)
        return new_ctx

    async def cancel_appointment(ctx: FlowContext) -> FlowContext:
        appt = ctx.appointment
        if appt is None or not appt.id:
            return ctx

        try:
            await backend.update_appointment(appt.id, {"status": "cancelled"})
        except Exception:
            logger.exception("Could not cancel appointment %s during rollback", appt.id)
            return ctx

        logger.info("Cancelled appointment %s", appt.id)
        new_ctx = ctx.model_copy(update={"appointment": appt.model_copy(update={"status": "cancelled"})})
        engine.emit(FlowEvent.APPOINTMENT_CANCELLED, new_ctx)
        return new_ctx

    async def initiate_payment(ctx: FlowContext) -> FlowContext:
        # Payment gateway integration lives outside this service; only the intent stub is built here.
        payment = ctx.payment or PaymentInfo()
        intent = PaymentInfo(
            amount=payment.amount,
            currency=payment.currency or get_settings().default_currency,
            status="processing",
            reference_id=f"pi_local_{uuid4().hex}",
        )
        new_ctx = ctx.model_copy(update={"payment": intent})
        engine.emit(FlowEvent.PAYMENT_INITIATED, new_ctx)
        return new_ctx

    async def send_confirmation(ctx: FlowContext) -> FlowContext:
        recipient = ""
        if ctx.user is not None:
            recipient = ctx.user.email
        elif ctx.appointment is not None and ctx.appointment.patient is not None:
            recipient = ctx.appointment.patient.email or ""

        notifications = [Notification(type="confirmation", channel="email", recipient=recipient, sent=True)]
        if ctx.appointment is not None:
            logger.info(
                "Confirmation for %s: appointment %s at %s",
                recipient,
                ctx.appointment.date,
                ctx.appointment.time,
            )

        new_ctx = ctx.model_copy(update={"notifications": notifications})
        engine.emit(FlowEvent.NOTIFICATION_SENT, new_ctx)
        return new_ctx

    return BusinessFlow(
        name=FLOW_NAME,
        steps=[
            FlowStep(
                name="validate_availability",
                action=validate_availability,
                validate=lambda ctx: ctx.appointment is not None and ctx.tenant is not None,
            ),
            FlowStep(name="create_appointment", action=create_appointment, rollback=cancel_appointment),
            FlowStep(
                name="initiate_payment",
                action=initiate_payment,
                validate=lambda ctx: ctx.payment is not None and ctx.payment.amount > 0,
            ),
            FlowStep(name="send_confirmation", action=send_confirmation),
        ],
    )


def register(engine: FlowEngine, backend) -> None:
    engine.register_flow(build_booking_flow(engine, backend))


def _appointment_payload(ctx: FlowContext) -> dict:
    appt = ctx.appointment
    patient = appt.patient or PatientInfo()
    user_email = ctx.user.email if ctx.user else None
    email = patient.email or user_email

    first_name = patient.first_name
    if not first_name:
        first_name = email.split("@")[0] if email else "Patient"

    return {
        "tenant_id": ctx.tenant.id if ctx.tenant else None,
        "provider_id": appt.provider_id,
        "provider_type": appt.provider_type,
        "service_id": appt.service_id,
        "patient_id": appt.patient_id,
        "appointment_date": appt.date,
        "start_time": appt.time,
        "duration_minutes": appt.duration_minutes,
        "patient_first_name": first_name,
        "patient_last_name": patient.last_name or "",
        "patient_email": email,
        "patient_phone": patient.phone,
    }


async def execute_booking(
    engine: FlowEngine,
    *,
    tenant_id: str,
    provider_id: str,
    service_id: str,
    date: str,
    time: str,
    email: str,
    amount: float,
    currency: str | None = None,
    provider_type: str = "doctor",
    duration_minutes: int | None = None,
    user_id: str | None = None,
    patient: PatientInfo | None = None,
) -> FlowContext:
    """Build a booking context from plain values and run ``appointment_booking``."""
    ctx = FlowContext(
        user=UserInfo(id=user_id or email, email=email, role="patient", tenant_id=tenant_id),
        tenant=TenantInfo(id=tenant_id),
        appointment=AppointmentInfo(
            provider_id=provider_id,
            provider_type=provider_type,
            service_id=service_id,
            date=date,
            time=time,
            duration_minutes=duration_minutes,
            patient=patient,
        ),
        payment=PaymentInfo(amount=amount, currency=currency),
    )
    return await engine.execute_flow(FLOW_NAME, ctx)
