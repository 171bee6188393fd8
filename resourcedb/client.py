"""
HTTP client for ResourceDB.

Talks to a ResourceDB server and raises the same errors the store raises,
so code written against a ResourceStore works unchanged over the network.

Example:
    >>> async with ResourceClient("http://localhost:8080") as client:
    ...     alice = await client.create({"name": "Alice"})
    ...     await client.update(alice.id, {"name": "Alicia"})

Invariants:
    - Error responses become ResourceError subclasses, never raw HTTP errors
    - Transport failures become ResourceConnectionError
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ResourceConnectionError, error_from_dict
from .store.base import Entity

logger = logging.getLogger(__name__)

TIMEOUT_HEADER = "X-Request-Timeout-Ms"


class ResourceClient:
    """Async client for the ResourceDB HTTP API.

    Attributes:
        base_url: Server base URL
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Server base URL (e.g. http://localhost:8080)
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (e.g. ASGITransport for tests)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> ResourceClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout_ms: int | None = None,
    ) -> httpx.Response:
        headers = {}
        if timeout_ms is not None:
            headers[TIMEOUT_HEADER] = str(timeout_ms)

        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.TransportError as e:
            raise ResourceConnectionError(
                f"Failed to reach ResourceDB: {e}",
                address=self.base_url,
            ) from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {"error": response.text}
            if not isinstance(body, dict):
                body = {"error": str(body)}
            raise error_from_dict(body, response.status_code)

        return response

    async def create(self, fields: dict[str, Any], *, timeout_ms: int | None = None) -> Entity:
        """Create a resource."""
        response = await self._request("POST", "/resources", json=fields, timeout_ms=timeout_ms)
        return Entity.from_dict(response.json())

    async def get(self, resource_id: int, *, timeout_ms: int | None = None) -> Entity:
        """Get a resource by id."""
        response = await self._request("GET", f"/resources/{resource_id}", timeout_ms=timeout_ms)
        return Entity.from_dict(response.json())

    async def list(self, *, timeout_ms: int | None = None) -> list[Entity]:
        """List all resources, ordered by id."""
        response = await self._request("GET", "/resources", timeout_ms=timeout_ms)
        return [Entity.from_dict(item) for item in response.json()]

    async def update(
        self,
        resource_id: int,
        fields: dict[str, Any],
        *,
        timeout_ms: int | None = None,
    ) -> Entity:
        """Replace a resource's fields."""
        response = await self._request(
            "PUT", f"/resources/{resource_id}", json=fields, timeout_ms=timeout_ms
        )
        return Entity.from_dict(response.json())

    async def delete(self, resource_id: int, *, timeout_ms: int | None = None) -> None:
        """Delete a resource."""
        await self._request("DELETE", f"/resources/{resource_id}", timeout_ms=timeout_ms)

    async def health(self) -> dict[str, Any]:
        """Check server health."""
        response = await self._request("GET", "/health")
        return response.json()
