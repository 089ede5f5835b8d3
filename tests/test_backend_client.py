from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from clinicflow.flows.errors import PersistenceError
from clinicflow.integrations.backend import BackendAdapter


def _adapter() -> BackendAdapter:
    return BackendAdapter({"base_url": "http://backend.test/", "timeout": 5})


def _client(response: httpx.Response | None = None, error: Exception | None = None) -> AsyncMock:
    mock_client = AsyncMock()
    if error is not None:
        mock_client.request = AsyncMock(side_effect=error)
    else:
        mock_client.request = AsyncMock(return_value=response)
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    return mock_client


def test_from_settings_uses_backend_base_url(monkeypatch):
    from clinicflow.config import get_settings

    monkeypatch.setenv("CLINICFLOW_BACKEND_BASE_URL", "http://api.clinic.test")
    get_settings.cache_clear()
    try:
        adapter = BackendAdapter.from_settings()
    finally:
        get_settings.cache_clear()

    assert adapter.base_url == "http://api.clinic.test"


@pytest.mark.asyncio
async def test_get_available_slots_sends_query_and_returns_list():
    mock_client = _client(httpx.Response(200, json=["09:00", "09:30"]))

    with patch("httpx.AsyncClient", return_value=mock_client):
        slots = await _adapter().get_available_slots("doc-1", "2024-06-03", "t1")

    assert slots == ["09:00", "09:30"]
    method, url = mock_client.request.await_args.args
    assert method == "GET"
    assert url == "http://backend.test/api/availability"
    params = mock_client.request.await_args.kwargs["params"]
    assert params == {"doctorId": "doc-1", "date": "2024-06-03", "tenantId": "t1", "providerType": "doctor"}


@pytest.mark.asyncio
async def test_get_available_slots_accepts_wrapped_response():
    mock_client = _client(httpx.Response(200, json={"time_slots": ["10:00"]}))

    with patch("httpx.AsyncClient", return_value=mock_client):
        slots = await _adapter().get_available_slots("doc-1", "2024-06-03", "t1", duration_minutes=60)

    assert slots == ["10:00"]
    assert mock_client.request.await_args.kwargs["params"]["durationMinutes"] == 60


@pytest.mark.asyncio
async def test_create_appointment_posts_payload():
    mock_client = _client(httpx.Response(201, json={"id": "appt-1", "status": "pending"}))

    with patch("httpx.AsyncClient", return_value=mock_client):
        record = await _adapter().create_appointment({"provider_id": "doc-1"})

    assert record["id"] == "appt-1"
    assert mock_client.request.await_args.args == ("POST", "http://backend.test/api/appointments")
    assert mock_client.request.await_args.kwargs["json"] == {"provider_id": "doc-1"}


@pytest.mark.asyncio
async def test_error_body_message_is_used():
    mock_client = _client(httpx.Response(409, json={"error": "Time slot is already booked"}))

    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(PersistenceError) as exc_info:
            await _adapter().create_appointment({})

    assert str(exc_info.value) == "Time slot is already booked"
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_fastapi_detail_is_used_as_message():
    mock_client = _client(httpx.Response(404, json={"detail": "Appointment not found"}))

    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(PersistenceError) as exc_info:
            await _adapter().update_appointment("appt-1", {"status": "cancelled"})

    assert str(exc_info.value) == "Appointment not found"
    assert mock_client.request.await_args.args == ("PATCH", "http://backend.test/api/appointments/appt-1")


@pytest.mark.asyncio
async def test_error_without_body_uses_default_message():
    mock_client = _client(httpx.Response(500, text="oops"))

    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(PersistenceError) as exc_info:
            await _adapter().create_service("t1", {"name": "Consulta"})

    assert str(exc_info.value) == "Failed to persist service"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_error_becomes_persistence_error():
    mock_client = _client(error=httpx.ConnectError("connection refused"))

    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(PersistenceError) as exc_info:
            await _adapter().list_services("t1")

    assert "Failed to list services" in str(exc_info.value)
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_list_services_unwraps_and_filters_by_category():
    mock_client = _client(httpx.Response(200, json={"services": [{"id": "s1", "category_id": "c1"}]}))

    with patch("httpx.AsyncClient", return_value=mock_client):
        services = await _adapter().list_services("t1", category_id="c1")

    assert services == [{"id": "s1", "category_id": "c1"}]
    assert mock_client.request.await_args.args[1] == "http://backend.test/api/tenants/t1/services"
    assert mock_client.request.await_args.kwargs["params"] == {"category_id": "c1"}


@pytest.mark.asyncio
async def test_update_category_unwraps_record():
    mock_client = _client(httpx.Response(200, json={"category": {"id": "c1", "is_active": False}}))

    with patch("httpx.AsyncClient", return_value=mock_client):
        record = await _adapter().update_category("c1", {"is_active": False})

    assert record == {"id": "c1", "is_active": False}
    assert mock_client.request.await_args.args == (
        "PATCH",
        "http://backend.test/api/catalog/service-categories/c1",
    )


@pytest.mark.asyncio
async def test_delete_with_empty_body_returns_none():
    mock_client = _client(httpx.Response(204))

    with patch("httpx.AsyncClient", return_value=mock_client):
        result = await _adapter().delete_category("c1")

    assert result is None
    assert mock_client.request.await_args.args[0] == "DELETE"
