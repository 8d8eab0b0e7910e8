"""Client for the resource source manager.

Some action types (``aiagent``) keep their configuration in a separate
service instead of the local resource table. The dispatcher fetches their
resource options here, and the AI agent connector runs them here.

Endpoints::

    GET  {base}/api/v1/aiAgent/{id}        resource options
    POST {base}/api/v1/aiAgent/{id}/run    run, returns {"payload": ...}

Every request carries ``Request-Token``; runs also forward the caller's
``Authorization``. Any status other than 200/201 is a ``DriverError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import DriverError
from actionruntime.core.logging import get_logger
from actionruntime.core.settings import get_settings

logger = get_logger(__name__)

RESOURCE_PATHS: dict[str, str] = {
    ActionType.AIAGENT.type_name: "/api/v1/aiAgent/{resource_id}",
}
RUN_PATHS: dict[str, str] = {
    ActionType.AIAGENT.type_name: "/api/v1/aiAgent/{resource_id}/run",
}
_OK_STATUSES = frozenset({200, 201})


def _type_name(action_type: str | int) -> str:
    if isinstance(action_type, str):
        return action_type
    return ActionType(action_type).type_name


class SourceManagerClient:
    """
    Async client for the source manager.

    Args:
        base_url: Service root (defaults to ``settings.source_manager_url``)
        token: ``Request-Token`` header value
        timeout: Transport timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.source_manager_url).rstrip("/")
        self.token = settings.source_manager_token if token is None else token
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    def _path(self, table: Mapping[str, str], action_type: str | int, resource_id: str | int) -> str:
        name = _type_name(action_type)
        template = table.get(name)
        if template is None:
            raise DriverError(f"invalid resource type for source manager: {name}")
        return self.base_url + template.format(resource_id=resource_id)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise DriverError(f"source manager request failed: {e}", cause=e) from e

        logger.debug("source_manager.response", method=method, url=url, status=response.status_code)
        if response.status_code not in _OK_STATUSES:
            raise DriverError(response.text or f"source manager returned status {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise DriverError("source manager returned invalid JSON", cause=e) from e

    async def get_resource(self, action_type: str | int, resource_id: str | int) -> dict[str, Any]:
        """Resource options for a type kept by the source manager."""
        url = self._path(RESOURCE_PATHS, action_type, resource_id)
        data = await self._send("GET", url, headers={"Request-Token": self.token})
        if not isinstance(data, dict):
            raise DriverError("source manager returned a non-object resource")
        return data

    async def run_resource(
        self,
        action_type: str | int,
        resource_id: str | int,
        request: Mapping[str, Any],
        *,
        authorization: str = "",
    ) -> dict[str, Any]:
        """Run a resource remotely and return the decoded result."""
        url = self._path(RUN_PATHS, action_type, resource_id)
        headers = {"Request-Token": self.token, "Authorization": authorization}
        data = await self._send("POST", url, headers=headers, body=request)
        if not isinstance(data, dict):
            raise DriverError("source manager returned a non-object run result")
        return data


__all__ = [
    "SourceManagerClient",
    "RESOURCE_PATHS",
    "RUN_PATHS",
]
