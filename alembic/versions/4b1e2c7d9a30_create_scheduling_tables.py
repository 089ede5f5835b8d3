"""create availability windows breaks appointments

Revision ID: 4b1e2c7d9a30
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


revision: str = "4b1e2c7d9a30"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "availability_windows",
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("provider_type", sa.String(length=16), server_default=sa.text("'doctor'"), nullable=False),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("lunch_start", sa.Time(), nullable=True),
        sa.Column("lunch_end", sa.Time(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_base_columns(),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_windows_day"),
    )
    op.create_index(
        "ix_availability_windows_provider_day",
        "availability_windows",
        ["tenant_id", "provider_id", "day_of_week"],
        unique=False,
    )

    op.create_table(
        "availability_breaks",
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_base_columns(),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_breaks_day"),
    )
    op.create_index(
        "ix_availability_breaks_provider_day",
        "availability_breaks",
        ["tenant_id", "provider_id", "day_of_week"],
        unique=False,
    )

    op.create_table(
        "appointments",
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("provider_type", sa.String(length=16), server_default=sa.text("'doctor'"), nullable=False),
        sa.Column("service_id", sa.String(length=64), nullable=True),
        sa.Column("patient_id", sa.String(length=64), nullable=True),
        sa.Column("patient_first_name", sa.String(length=255), nullable=False),
        sa.Column("patient_last_name", sa.String(length=255), server_default=sa.text("''"), nullable=False),
        sa.Column("patient_email", sa.String(length=255), nullable=True),
        sa.Column("patient_phone", sa.String(length=64), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(length=32), server_default=sa.text("'pending'"), nullable=False),
        *_base_columns(),
    )
    op.create_index(
        "uq_appointments_provider_date_start",
        "appointments",
        ["provider_id", "appointment_date", "start_time"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )
    op.create_index(
        "ix_appointments_tenant_provider_date",
        "appointments",
        ["tenant_id", "provider_id", "appointment_date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_appointments_tenant_provider_date", table_name="appointments")
    op.drop_index("uq_appointments_provider_date_start", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_availability_breaks_provider_day", table_name="availability_breaks")
    op.drop_table("availability_breaks")

    op.drop_index("ix_availability_windows_provider_day", table_name="availability_windows")
    op.drop_table("availability_windows")
