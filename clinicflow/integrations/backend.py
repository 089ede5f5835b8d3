"""
Backend Integration — the HTTP collaborator that owns appointments and the catalog.

Every method raises PersistenceError when the call fails.
"""

from __future__ import annotations

import logging
from typing import Any

from clinicflow.config import get_settings
from clinicflow.integrations.base import IntegrationAdapter

logger = logging.getLogger(__name__)


class BackendAdapter(IntegrationAdapter):
    """
    Client for the scheduling and catalog endpoints.

    Config keys:
        base_url: str — backend root URL
        timeout: float — request timeout in seconds
    """

    integration_type = "backend"

    @classmethod
    def from_settings(cls) -> "BackendAdapter":
        settings = get_settings()
        return cls({"base_url": settings.backend_base_url, "timeout": settings.http_timeout})

    # Scheduling

    async def get_available_slots(
        self,
        provider_id: str,
        date: str,
        tenant_id: str,
        provider_type: str = "doctor",
        duration_minutes: int | None = None,
    ) -> list[str]:
        data = await self._request(
            "GET",
            "/api/availability",
            params={
                "doctorId": provider_id,
                "date": date,
                "tenantId": tenant_id,
                "providerType": provider_type,
                "durationMinutes": duration_minutes,
            },
            default_error="Failed to check availability",
        )
        if isinstance(data, dict):
            data = data.get("time_slots") or data.get("slots") or []
        return [str(s) for s in (data or [])]

    async def create_appointment(self, payload: dict[str, Any]) -> dict:
        data = await self._request(
            "POST",
            "/api/appointments",
            json=payload,
            default_error="Failed to create appointment",
        )
        return data or {}

    async def update_appointment(self, appointment_id: str, fields: dict[str, Any]) -> dict:
        data = await self._request(
            "PATCH",
            f"/api/appointments/{appointment_id}",
            json=fields,
            default_error="Failed to update appointment",
        )
        return data or {}

    # Services

    async def list_services(self, tenant_id: str, category_id: str | None = None) -> list[dict]:
        data = await self._request(
            "GET",
            f"/api/tenants/{tenant_id}/services",
            params={"category_id": category_id},
            default_error="Failed to list services",
        )
        if isinstance(data, dict):
            data = data.get("services") or []
        return list(data or [])

    async def create_service(self, tenant_id: str, service: dict[str, Any]) -> dict:
        data = await self._request(
            "POST",
            f"/api/tenants/{tenant_id}/services",
            json=service,
            default_error="Failed to persist service",
        )
        return _unwrap(data, "service")

    async def update_service(self, tenant_id: str, service_id: str, fields: dict[str, Any]) -> dict:
        data = await self._request(
            "PATCH",
            f"/api/tenants/{tenant_id}/services/{service_id}",
            json=fields,
            default_error="Failed to persist service",
        )
        return _unwrap(data, "service")

    async def delete_service(self, tenant_id: str, service_id: str) -> None:
        await self._request(
            "DELETE",
            f"/api/tenants/{tenant_id}/services/{service_id}",
            default_error="Failed to delete service",
        )

    # Categories

    async def list_categories(self, tenant_id: str) -> list[dict]:
        data = await self._request(
            "GET",
            f"/api/tenants/{tenant_id}/categories",
            params={"include_global": "false"},
            default_error="Failed to list categories",
        )
        if isinstance(data, dict):
            data = data.get("categories") or []
        return list(data or [])

    async def get_category(self, category_id: str) -> dict:
        data = await self._request(
            "GET",
            f"/api/catalog/service-categories/{category_id}",
            default_error="Category not found",
        )
        return _unwrap(data, "category")

    async def create_category(self, category: dict[str, Any]) -> dict:
        data = await self._request(
            "POST",
            "/api/catalog/service-categories",
            json=category,
            default_error="Failed to persist category",
        )
        return _unwrap(data, "category")

    async def update_category(self, category_id: str, fields: dict[str, Any]) -> dict:
        data = await self._request(
            "PATCH",
            f"/api/catalog/service-categories/{category_id}",
            json=fields,
            default_error="Failed to persist category",
        )
        return _unwrap(data, "category")

    async def delete_category(self, category_id: str) -> None:
        await self._request(
            "DELETE",
            f"/api/catalog/service-categories/{category_id}",
            default_error="Failed to delete category",
        )


def _unwrap(data: Any, key: str) -> dict:
    """Accept both ``{"service": {...}}`` and a bare record."""
    if isinstance(data, dict) and isinstance(data.get(key), dict):
        return data[key]
    return data if isinstance(data, dict) else {}
