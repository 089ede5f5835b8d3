from __future__ import annotations

from datetime import date, time

from sqlalchemy import Boolean, Date, Index, SmallInteger, String, Time, text
from sqlalchemy.orm import Mapped, mapped_column

from clinicflow.models.base import Base, TimestampMixin, UUIDMixin


class ProviderAvailability(UUIDMixin, TimestampMixin, Base):
    """Weekly working window of a provider (day_of_week: 0=Sunday)."""

    __tablename__ = "availability_windows"
    __table_args__ = (
        Index("ix_availability_windows_provider_day", "tenant_id", "provider_id", "day_of_week"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(64), nullable=False)
    provider_type: Mapped[str] = mapped_column(String(16), default="doctor", nullable=False)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    lunch_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class ProviderBreak(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "availability_breaks"
    __table_args__ = (
        Index("ix_availability_breaks_provider_day", "tenant_id", "provider_id", "day_of_week"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(64), nullable=False)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Appointment(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live booking per provider and start time; cancelled rows free the slot.
        Index(
            "uq_appointments_provider_date_start",
            "provider_id",
            "appointment_date",
            "start_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
        ),
        Index("ix_appointments_tenant_provider_date", "tenant_id", "provider_id", "appointment_date"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(64), nullable=False)
    provider_type: Mapped[str] = mapped_column(String(16), default="doctor", nullable=False)
    service_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    patient_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    patient_first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    patient_last_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    patient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    patient_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="pending", nullable=False)
