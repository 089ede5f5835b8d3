"""
Shared steps for catalog management flows (services and categories).

Each builder takes a ``CatalogKind`` that says which context field holds the
record and how to reach the backend for it, and returns a FlowStep.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from clinicflow.flows.errors import DuplicateNameError, PersistenceError, StepValidationError
from clinicflow.flows.types import FlowContext, FlowStep, Operation, ValidationResult

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


@dataclass(frozen=True)
class CatalogKind:
    name: str
    model: type[BaseModel]
    check_fields: Callable[[Any], list[str]]
    list_records: Callable[[Any, Any], Awaitable[list[dict]]]
    create: Callable[[Any, Any], Awaitable[dict]]
    update: Callable[[Any, Any, dict], Awaitable[dict]]
    delete: Callable[[Any, Any], Awaitable[None]]

    def get(self, ctx: FlowContext):
        return getattr(ctx, self.name)

    def put(self, ctx: FlowContext, record) -> FlowContext:
        return ctx.model_copy(update={self.name: record})


def check_name(name: str | None, label: str) -> list[str]:
    errors: list[str] = []
    if not name or not name.strip():
        errors.append(f"{label} name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"{label} name must be at most {MAX_NAME_LENGTH} characters")
    return errors


def check_operation(ctx: FlowContext, expected: Operation, step_name: str) -> None:
    if ctx.operation is not None and ctx.operation != expected:
        raise StepValidationError(
            step_name, [f"Operation {ctx.operation.value} does not match flow operation {expected.value}"]
        )


def operation_context(operation: Operation) -> FlowContext:
    """Flow template that fills ``operation`` when the caller leaves it out."""
    return FlowContext(operation=operation)


def validate_data_step(kind: CatalogKind) -> FlowStep:
    step_name = f"validate_{kind.name}_data"

    async def action(ctx: FlowContext) -> FlowContext:
        errors = kind.check_fields(kind.get(ctx))
        if errors:
            raise StepValidationError(step_name, errors)
        return ctx.model_copy(update={"validation_result": ValidationResult(valid=True)})

    return FlowStep(
        name=step_name,
        action=action,
        validate=lambda ctx: kind.get(ctx) is not None and ctx.tenant is not None,
    )


def check_duplicate_step(kind: CatalogKind, backend) -> FlowStep:
    async def action(ctx: FlowContext) -> FlowContext:
        record = kind.get(ctx)
        if ctx.operation == Operation.DELETE or record is None:
            return ctx

        try:
            existing = await kind.list_records(backend, record)
        except PersistenceError as e:
            # Listing is advisory; persistence still rejects real conflicts.
            logger.warning("Could not check for duplicate %s names: %s", kind.name, e)
            return ctx

        wanted = record.name.strip().lower()
        for other in existing:
            if str(other.get("name", "")).strip().lower() != wanted:
                continue
            if record.id is not None and str(other.get("id")) == str(record.id):
                continue
            if other.get("tenant_id", record.tenant_id) != record.tenant_id:
                continue
            raise DuplicateNameError(kind.name, record.name, record.tenant_id)

        return ctx

    return FlowStep(name=f"check_duplicate_{kind.name}", action=action)


def persist_step(kind: CatalogKind, backend, operation: Operation) -> FlowStep:
    """Persist the record for one fixed operation; a context asking for another operation is rejected."""
    step_name = f"persist_{kind.name}"

    async def action(ctx: FlowContext) -> FlowContext:
        record = kind.get(ctx)
        check_operation(ctx, operation, step_name)

        if operation != Operation.CREATE and not record.id:
            raise StepValidationError(step_name, [f"{kind.name.capitalize()} id is required for {operation.value}"])

        if operation == Operation.CREATE:
            result = await kind.create(backend, record)
        elif operation == Operation.UPDATE:
            # Only the fields the caller sent; defaults must not overwrite stored values.
            result = await kind.update(backend, record, record.model_dump(exclude={"id"}, exclude_unset=True))
        elif operation == Operation.TOGGLE_STATUS:
            if "is_active" not in record.model_fields_set:
                raise StepValidationError(step_name, ["is_active is required for toggle_status"])
            result = await kind.update(backend, record, {"is_active": record.is_active})
        else:
            await kind.delete(backend, record)
            result = {}

        merged = kind.model.model_validate({**record.model_dump(), **(result or {})})
        logger.info("%s %s successful: %s", kind.name.capitalize(), operation.value, merged.id)
        return kind.put(ctx, merged)

    async def rollback(ctx: FlowContext) -> FlowContext:
        record = kind.get(ctx)
        if operation != Operation.CREATE or record is None or not record.id:
            return ctx
        logger.info("Rolling back %s creation: %s", kind.name, record.id)
        try:
            await kind.delete(backend, record)
        except Exception:
            logger.exception("Rollback of %s %s failed", kind.name, record.id)
        return ctx

    return FlowStep(
        name=step_name,
        action=action,
        validate=lambda ctx: kind.get(ctx) is not None,
        rollback=rollback,
    )


def emit_event_step(kind: CatalogKind) -> FlowStep:
    async def action(ctx: FlowContext) -> FlowContext:
        record = kind.get(ctx)
        name = record.name if record is not None else None
        if ctx.operation == Operation.TOGGLE_STATUS:
            state = "active" if record is not None and record.is_active else "inactive"
            logger.info("%s status toggled: %s (%s)", kind.name.capitalize(), name, state)
        elif ctx.operation is not None:
            logger.info("%s %sd: %s", kind.name.capitalize(), ctx.operation.value, name)
        return ctx

    return FlowStep(name=f"emit_{kind.name}_event", action=action)


def update_dependencies_step(kind: CatalogKind) -> FlowStep:
    async def action(ctx: FlowContext) -> FlowContext:
        # Hook for cache/index invalidation; nothing to refresh yet.
        record = kind.get(ctx)
        logger.debug("Dependencies updated for %s %s", kind.name, record.id if record is not None else None)
        return ctx

    return FlowStep(name="update_dependencies", action=action)
