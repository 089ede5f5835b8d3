"""
ClinicFlow CLI.

Usage:
    clinicflow flows                                 — list registered flows
    clinicflow slots <schedule.yaml> -p <id> -d <date> — free slots from a schedule file
    clinicflow book --tenant .. --provider .. ...    — run the booking flow against the backend
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

import click

from clinicflow.flows.errors import FlowError

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def cli(verbose: bool):
    """ClinicFlow — booking orchestration CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@cli.command()
def flows():
    """List registered flows."""
    from clinicflow.flows import build_engine

    for name in build_engine().flow_names():
        click.echo(name)


@cli.command()
@click.argument("schedule_file", type=click.Path(dir_okay=False))
@click.option("--provider", "-p", "provider_id", required=True, help="Provider id in the schedule file")
@click.option("--date", "-d", "on_date", required=True, help="Date (YYYY-MM-DD)")
@click.option("--duration", type=click.IntRange(min=1), default=None, help="Service duration in minutes")
@click.option(
    "--suggest",
    type=click.Choice(["next_week", "two_weeks", "month"]),
    default=None,
    help="List slots for a date range starting at --date",
)
def slots(schedule_file: str, provider_id: str, on_date: str, duration: int | None, suggest: str | None):
    """Compute free slots for a provider from a YAML schedule."""
    from clinicflow.core.availability import resolve_slots, suggest_slots
    from clinicflow.core.schedule_loader import load_schedule

    try:
        day = date.fromisoformat(on_date)
    except ValueError:
        click.echo(f"Error: invalid date {on_date}", err=True)
        raise SystemExit(1)

    try:
        schedule = load_schedule(schedule_file)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    provider = schedule.provider(provider_id)
    if provider is None:
        click.echo(f"Error: provider {provider_id} not found in {schedule_file}", err=True)
        raise SystemExit(1)

    duration = duration or schedule.default_duration_minutes

    if suggest:
        booked_by_date: dict = {}
        for appt in provider.appointments:
            booked_by_date.setdefault(appt.date, []).append(appt)
        suggestion = suggest_slots(
            provider.windows,
            booked_by_date,
            day,
            duration,
            suggestion_type=suggest,
            breaks=provider.breaks,
        )
        if not suggestion.days:
            click.echo("No free slots.")
            return
        for d in suggestion.days:
            click.echo(f"{d.date.isoformat()} {d.day_name}: {' '.join(s.start_time for s in d.slots)}")
        return

    free = resolve_slots(provider.windows, provider.booked_on(day), day, duration, breaks=provider.breaks)
    if not free:
        click.echo("No free slots.")
        return
    for s in free:
        click.echo(s)


@cli.command()
@click.option("--tenant", "tenant_id", required=True)
@click.option("--provider", "provider_id", required=True)
@click.option("--provider-type", type=click.Choice(["doctor", "member"]), default="doctor")
@click.option("--service", "service_id", required=True)
@click.option("--date", "on_date", required=True, help="Date (YYYY-MM-DD)")
@click.option("--time", "at_time", required=True, help="Start time (HH:MM)")
@click.option("--email", required=True, help="Patient email")
@click.option("--amount", type=float, required=True, help="Amount to charge")
@click.option("--currency", default=None)
@click.option("--duration", type=click.IntRange(min=1), default=None, help="Service duration in minutes")
def book(
    tenant_id: str,
    provider_id: str,
    provider_type: str,
    service_id: str,
    on_date: str,
    at_time: str,
    email: str,
    amount: float,
    currency: str | None,
    duration: int | None,
):
    """Book an appointment through the appointment_booking flow."""
    from clinicflow.flows import build_engine
    from clinicflow.flows.booking import execute_booking

    engine = build_engine()
    try:
        ctx = asyncio.run(
            execute_booking(
                engine,
                tenant_id=tenant_id,
                provider_id=provider_id,
                provider_type=provider_type,
                service_id=service_id,
                date=on_date,
                time=at_time,
                email=email,
                amount=amount,
                currency=currency,
                duration_minutes=duration,
            )
        )
    except FlowError as e:
        click.echo(f"Error: booking failed at {e.step or 'unknown step'}: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"✓ Appointment {ctx.appointment.id} booked ({ctx.appointment.status})")
    click.echo(f"✓ Payment {ctx.payment.reference_id} {ctx.payment.status}")
    click.echo(f"✓ Confirmation sent to {email}")


if __name__ == "__main__":
    cli()
