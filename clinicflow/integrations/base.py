"""
Base Integration Adapter — shared HTTP plumbing for collaborator services.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from clinicflow.flows.errors import PersistenceError

logger = logging.getLogger(__name__)


class IntegrationAdapter:
    """
    Base class for adapters that talk JSON over HTTP.

    Config keys:
        base_url: str — collaborator root URL
        timeout: float — per-request timeout in seconds (default 15)
        headers: dict — extra headers sent with every request
    """

    integration_type: str = ""

    def __init__(self, config: dict):
        self.config = config
        self.base_url = str(config.get("base_url", "")).rstrip("/")
        self.timeout = float(config.get("timeout", 15.0))
        self.headers = dict(config.get("headers") or {})

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: Any = None,
        default_error: str = "Request failed",
    ) -> Any:
        """
        Send one request and return the decoded JSON body (None when empty).

        Raises PersistenceError on transport errors and non-2xx responses,
        using the collaborator's ``error`` field as the message when present.
        """
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
                resp = await client.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise PersistenceError(f"{default_error}: {e}") from e

        if resp.status_code >= 400:
            message = _error_message(resp) or default_error
            logger.warning("%s %s -> %s: %s", method, url, resp.status_code, message)
            raise PersistenceError(message, status_code=resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(f"{default_error}: invalid JSON response", status_code=resp.status_code) from e


def _error_message(resp: httpx.Response) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        error = data.get("error") or data.get("detail")
        if isinstance(error, str) and error:
            return error
    return None
