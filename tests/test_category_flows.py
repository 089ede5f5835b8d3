from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from clinicflow.flows.categories import execute_category_flow, register
from clinicflow.flows.engine import FlowEngine
from clinicflow.flows.errors import DependencyExistsError, DuplicateNameError, PersistenceError, StepValidationError
from clinicflow.flows.types import CategoryInfo, FlowContext, Operation, TenantInfo


def _backend(*, services=None, parent=None, categories=None) -> AsyncMock:
    backend = AsyncMock()
    backend.list_services = AsyncMock(return_value=services or [])
    backend.list_categories = AsyncMock(return_value=categories or [])
    backend.get_category = AsyncMock(return_value=parent or {})
    backend.create_category = AsyncMock(return_value={"id": "cat-new"})
    backend.update_category = AsyncMock(side_effect=lambda category_id, fields: {"id": category_id, **fields})
    backend.delete_category = AsyncMock(return_value=None)
    return backend


def _engine(backend) -> FlowEngine:
    engine = FlowEngine()
    register(engine, backend)
    return engine


@pytest.mark.asyncio
async def test_delete_category_with_active_service_is_blocked():
    backend = _backend(services=[{"id": "s1", "category_id": "cat-1", "is_active": True}])
    engine = _engine(backend)

    with pytest.raises(DependencyExistsError) as exc_info:
        await execute_category_flow(engine, "delete", {"id": "cat-1"}, "t1")

    assert exc_info.value.step == "check_dependent_services"
    assert exc_info.value.count == 1
    assert "1 active service(s)" in str(exc_info.value)
    backend.list_services.assert_awaited_once_with("t1", category_id="cat-1")
    backend.delete_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_category_ignores_inactive_and_unrelated_services():
    backend = _backend(
        services=[
            {"id": "s1", "category_id": "cat-1", "is_active": False},
            {"id": "s2", "category_id": "cat-2", "is_active": True},
        ]
    )
    engine = _engine(backend)

    await execute_category_flow(engine, "delete", {"id": "cat-1"}, "t1")

    backend.delete_category.assert_awaited_once_with("cat-1")


@pytest.mark.asyncio
async def test_delete_category_requires_id():
    backend = _backend()
    engine = _engine(backend)

    with pytest.raises(StepValidationError) as exc_info:
        await execute_category_flow(engine, "delete", {"name": "Dental"}, "t1")

    assert exc_info.value.step == "check_dependent_services"
    backend.list_services.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_category_persists():
    backend = _backend()
    engine = _engine(backend)

    ctx = await execute_category_flow(engine, "create", {"name": "Dental"}, "t1")

    assert ctx.category.id == "cat-new"
    payload = backend.create_category.await_args.args[0]
    assert payload["name"] == "Dental"
    assert payload["tenant_id"] == "t1"
    backend.list_categories.assert_awaited_once_with("t1")
    backend.get_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_duplicate_category_name():
    backend = _backend(categories=[{"id": "cat-1", "name": "DENTAL", "tenant_id": "t1"}])
    engine = _engine(backend)

    with pytest.raises(DuplicateNameError):
        await execute_category_flow(engine, "create", {"name": "dental"}, "t1")

    backend.create_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_parent_from_same_tenant_is_accepted():
    backend = _backend(parent={"id": "cat-p", "tenant_id": "t1", "is_active": True})
    engine = _engine(backend)

    ctx = await execute_category_flow(engine, "create", {"name": "Ortodoncia", "parent_id": "cat-p"}, "t1")

    backend.get_category.assert_awaited_once_with("cat-p")
    assert ctx.category.parent_id == "cat-p"


@pytest.mark.asyncio
async def test_global_parent_is_accepted():
    backend = _backend(parent={"id": "cat-g", "tenant_id": None, "is_active": True})
    engine = _engine(backend)

    ctx = await execute_category_flow(engine, "create", {"name": "Ortodoncia", "parent_id": "cat-g"}, "t1")

    assert ctx.category.id == "cat-new"


@pytest.mark.parametrize(
    "parent, message",
    [
        ({"id": "cat-p", "tenant_id": "t2", "is_active": True}, "Parent category must belong to the same tenant"),
        ({"id": "cat-p", "tenant_id": "t1", "is_active": False}, "Parent category must be active"),
    ],
)
@pytest.mark.asyncio
async def test_invalid_parent_is_rejected(parent, message):
    backend = _backend(parent=parent)
    engine = _engine(backend)

    with pytest.raises(StepValidationError) as exc_info:
        await execute_category_flow(engine, "create", {"name": "Ortodoncia", "parent_id": "cat-p"}, "t1")

    assert exc_info.value.step == "validate_parent_category"
    assert exc_info.value.errors == [message]
    backend.create_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_parent_is_rejected():
    backend = _backend()
    backend.get_category = AsyncMock(side_effect=PersistenceError("Category not found", status_code=404))
    engine = _engine(backend)

    with pytest.raises(StepValidationError) as exc_info:
        await execute_category_flow(engine, "create", {"name": "Ortodoncia", "parent_id": "ghost"}, "t1")

    assert exc_info.value.errors == ["Parent category does not exist or is not available"]


@pytest.mark.asyncio
async def test_category_cannot_be_its_own_parent():
    backend = _backend()
    engine = _engine(backend)

    with pytest.raises(StepValidationError) as exc_info:
        await execute_category_flow(engine, "update", {"id": "cat-1", "name": "Dental", "parent_id": "cat-1"}, "t1")

    assert exc_info.value.errors == ["A category cannot be its own parent"]
    backend.update_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_toggle_category_status():
    backend = _backend()
    engine = _engine(backend)

    ctx = await execute_category_flow(engine, "toggle_status", {"id": "cat-1", "is_active": False}, "t1")

    backend.update_category.assert_awaited_once_with("cat-1", {"is_active": False})
    assert ctx.category.is_active is False


@pytest.mark.asyncio
async def test_rename_category_to_own_name_is_allowed():
    backend = _backend(categories=[{"id": "cat-1", "name": "Dental", "tenant_id": "t1"}])
    engine = _engine(backend)

    ctx = await execute_category_flow(engine, "update", {"id": "cat-1", "name": "dental"}, "t1")

    assert ctx.category.name == "dental"
    backend.update_category.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_sends_only_supplied_fields():
    backend = _backend()
    engine = _engine(backend)

    await execute_category_flow(engine, "update", {"id": "cat-1", "name": "Renamed"}, "t1")

    backend.update_category.assert_awaited_once_with("cat-1", {"name": "Renamed", "tenant_id": "t1"})


@pytest.mark.asyncio
async def test_toggle_without_is_active_is_rejected():
    backend = _backend()
    engine = _engine(backend)

    with pytest.raises(StepValidationError) as exc_info:
        await execute_category_flow(engine, "toggle_status", {"id": "cat-1"}, "t1")

    assert exc_info.value.errors == ["is_active is required for toggle_status"]
    backend.update_category.assert_not_awaited()


@pytest.mark.parametrize("flow_name", ["category_create", "category_update", "category_toggle_status"])
@pytest.mark.asyncio
async def test_delete_operation_outside_delete_flow_is_rejected(flow_name):
    backend = _backend(services=[{"id": "svc-9", "category_id": "cat-1", "is_active": True}])
    engine = _engine(backend)
    ctx = FlowContext(
        category=CategoryInfo(id="cat-1", name="Dental", tenant_id="t1", is_active=True),
        tenant=TenantInfo(id="t1"),
        operation=Operation.DELETE,
    )

    with pytest.raises(StepValidationError) as exc_info:
        await engine.execute_flow(flow_name, ctx)

    assert exc_info.value.step == "persist_category"
    backend.delete_category.assert_not_awaited()
    backend.update_category.assert_not_awaited()
    backend.create_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_flow_rejects_other_operation():
    backend = _backend()
    engine = _engine(backend)
    ctx = FlowContext(
        category=CategoryInfo(id="cat-1", name="Dental", tenant_id="t1"),
        tenant=TenantInfo(id="t1"),
        operation=Operation.UPDATE,
    )

    with pytest.raises(StepValidationError) as exc_info:
        await engine.execute_flow("category_delete", ctx)

    assert exc_info.value.step == "check_dependent_services"
    backend.list_services.assert_not_awaited()
    backend.delete_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_flow_fills_missing_operation_and_checks_dependents():
    backend = _backend(services=[{"id": "svc-9", "category_id": "cat-1", "is_active": True}])
    engine = _engine(backend)
    ctx = FlowContext(category=CategoryInfo(id="cat-1", tenant_id="t1"), tenant=TenantInfo(id="t1"))

    with pytest.raises(DependencyExistsError):
        await engine.execute_flow("category_delete", ctx)

    backend.delete_category.assert_not_awaited()
