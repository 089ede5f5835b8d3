from __future__ import annotations

import logging
from typing import Any

from clinicflow.flows.catalog import (
    CatalogKind,
    check_duplicate_step,
    check_name,
    check_operation,
    emit_event_step,
    operation_context,
    persist_step,
    update_dependencies_step,
    validate_data_step,
)
from clinicflow.flows.engine import FlowEngine
from clinicflow.flows.errors import DependencyExistsError, PersistenceError, StepValidationError
from clinicflow.flows.types import BusinessFlow, CategoryInfo, FlowContext, FlowStep, Operation, TenantInfo

logger = logging.getLogger(__name__)


def check_category_fields(category: CategoryInfo) -> list[str]:
    errors = check_name(category.name, "Category")
    if not category.tenant_id:
        errors.append("Tenant ID is required - categories must belong to a tenant")
    return errors


CATEGORY = CatalogKind(
    name="category",
    model=CategoryInfo,
    check_fields=check_category_fields,
    list_records=lambda backend, c: backend.list_categories(c.tenant_id),
    create=lambda backend, c: backend.create_category(c.model_dump(exclude={"id"})),
    update=lambda backend, c, fields: backend.update_category(c.id, fields),
    delete=lambda backend, c: backend.delete_category(c.id),
)


def validate_parent_category_step(backend) -> FlowStep:
    step_name = "validate_parent_category"

    async def action(ctx: FlowContext) -> FlowContext:
        category = ctx.category
        if category is None or not category.parent_id or ctx.operation == Operation.DELETE:
            return ctx

        if category.id is not None and category.parent_id == category.id:
            raise StepValidationError(step_name, ["A category cannot be its own parent"])

        try:
            parent = await backend.get_category(category.parent_id)
        except PersistenceError:
            raise StepValidationError(step_name, ["Parent category does not exist or is not available"]) from None

        # Global categories (no tenant) may be used as parents by any tenant.
        if parent.get("tenant_id") and parent["tenant_id"] != category.tenant_id:
            raise StepValidationError(step_name, ["Parent category must belong to the same tenant"])
        if not parent.get("is_active", False):
            raise StepValidationError(step_name, ["Parent category must be active"])

        return ctx

    return FlowStep(name=step_name, action=action)


def check_dependent_services_step(backend) -> FlowStep:
    step_name = "check_dependent_services"

    async def action(ctx: FlowContext) -> FlowContext:
        check_operation(ctx, Operation.DELETE, step_name)
        category = ctx.category

        services = await backend.list_services(category.tenant_id, category_id=category.id)
        dependents = [
            s for s in services if str(s.get("category_id")) == str(category.id) and s.get("is_active", True)
        ]
        if dependents:
            logger.info("Category %s has %d active dependent service(s)", category.id, len(dependents))
            raise DependencyExistsError(category.id, len(dependents))
        return ctx

    return FlowStep(
        name=step_name,
        action=action,
        validate=lambda ctx: ctx.category is not None and bool(ctx.category.id),
    )


def build_category_flows(backend) -> list[BusinessFlow]:
    validate = validate_data_step(CATEGORY)
    duplicate = check_duplicate_step(CATEGORY, backend)
    parent = validate_parent_category_step(backend)
    dependents = check_dependent_services_step(backend)
    emit = emit_event_step(CATEGORY)
    dependencies = update_dependencies_step(CATEGORY)

    def flow(operation: Operation, *steps) -> BusinessFlow:
        return BusinessFlow(
            name=f"category_{operation.value}",
            steps=[*steps, persist_step(CATEGORY, backend, operation), emit, dependencies],
            context=operation_context(operation),
        )

    return [
        flow(Operation.CREATE, validate, duplicate, parent),
        flow(Operation.UPDATE, validate, duplicate, parent),
        flow(Operation.DELETE, dependents),
        flow(Operation.TOGGLE_STATUS),
    ]


def register(engine: FlowEngine, backend) -> None:
    for flow in build_category_flows(backend):
        engine.register_flow(flow)


async def execute_category_flow(
    engine: FlowEngine,
    operation: Operation | str,
    category_data: dict[str, Any],
    tenant_id: str,
) -> FlowContext:
    operation = Operation(operation)
    ctx = FlowContext(
        category=CategoryInfo.model_validate({**category_data, "tenant_id": tenant_id}),
        operation=operation,
        tenant=TenantInfo(id=tenant_id),
    )
    return await engine.execute_flow(f"category_{operation.value}", ctx)
