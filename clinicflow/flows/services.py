from __future__ import annotations

from typing import Any

from clinicflow.flows.catalog import (
    CatalogKind,
    check_duplicate_step,
    check_name,
    emit_event_step,
    operation_context,
    persist_step,
    update_dependencies_step,
    validate_data_step,
)
from clinicflow.flows.engine import FlowEngine
from clinicflow.flows.types import BusinessFlow, FlowContext, Operation, ServiceInfo, TenantInfo

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480


def check_service_fields(service: ServiceInfo) -> list[str]:
    errors = check_name(service.name, "Service")
    duration = service.duration_minutes
    if duration is None or not (MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES):
        errors.append(f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes")
    if service.price is None or service.price < 0:
        errors.append("Price must be zero or a positive number")
    if not service.tenant_id:
        errors.append("Tenant ID is required")
    return errors


SERVICE = CatalogKind(
    name="service",
    model=ServiceInfo,
    check_fields=check_service_fields,
    list_records=lambda backend, s: backend.list_services(s.tenant_id),
    create=lambda backend, s: backend.create_service(s.tenant_id, s.model_dump(exclude={"id"})),
    update=lambda backend, s, fields: backend.update_service(s.tenant_id, s.id, fields),
    delete=lambda backend, s: backend.delete_service(s.tenant_id, s.id),
)


def build_service_flows(backend) -> list[BusinessFlow]:
    validate = validate_data_step(SERVICE)
    duplicate = check_duplicate_step(SERVICE, backend)
    emit = emit_event_step(SERVICE)
    dependencies = update_dependencies_step(SERVICE)

    def flow(operation: Operation, *steps) -> BusinessFlow:
        return BusinessFlow(
            name=f"service_{operation.value}",
            steps=[*steps, persist_step(SERVICE, backend, operation), emit, dependencies],
            context=operation_context(operation),
        )

    return [
        flow(Operation.CREATE, validate, duplicate),
        flow(Operation.UPDATE, validate, duplicate),
        flow(Operation.DELETE),
        flow(Operation.TOGGLE_STATUS),
    ]


def register(engine: FlowEngine, backend) -> None:
    for flow in build_service_flows(backend):
        engine.register_flow(flow)


async def execute_service_flow(
    engine: FlowEngine,
    operation: Operation | str,
    service_data: dict[str, Any],
    tenant_id: str,
) -> FlowContext:
    """Run ``service_<operation>`` for a plain service dict scoped to ``tenant_id``."""
    operation = Operation(operation)
    ctx = FlowContext(
        service=ServiceInfo.model_validate({**service_data, "tenant_id": tenant_id}),
        operation=operation,
        tenant=TenantInfo(id=tenant_id),
    )
    return await engine.execute_flow(f"service_{operation.value}", ctx)
