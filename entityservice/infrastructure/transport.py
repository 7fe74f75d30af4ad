"""Transport — request abstraction consumed by entity services, plus an httpx implementation.

Invariants:
    - Every call returns the decoded JSON body (dict, list, scalar) or None for an empty body
    - Every failure raises; nothing is retried here (retry is the caller's concern)
    - httpx exceptions are mapped to TransportError subclasses (core/errors.py)

Design Decisions:
    - Protocol over ABC: tests and alternative transports need no inheritance
    - query() is a separate verb from get() even though both are HTTP GET, so
      fakes can tell collection reads from single reads
    - Thin wrapper over httpx.AsyncClient: timeouts come from the client config
"""

import logging
from typing import Any, Protocol

import httpx

from entityservice.core.errors import (
    ResourceNotFoundError,
    TransportError,
    TransportTimeoutError,
)

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Contract for server access, implemented by HttpTransport and test fakes."""
    async def get(
        self, endpoint: str, body: Any = None,
        params: dict | None = None, headers: dict | None = None,
    ) -> Any: ...
    async def query(
        self, endpoint: str, body: Any = None,
        params: dict | None = None, headers: dict | None = None,
    ) -> Any: ...
    async def create(
        self, endpoint: str, body: Any = None,
        params: dict | None = None, headers: dict | None = None,
    ) -> Any: ...
    async def update(
        self, endpoint: str, body: Any = None,
        params: dict | None = None, headers: dict | None = None,
    ) -> Any: ...
    async def delete(
        self, endpoint: str, body: Any = None,
        params: dict | None = None, headers: dict | None = None,
    ) -> Any: ...


class HttpTransport:
    """JSON-over-HTTP transport backed by httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str = "",
        timeout_seconds: float = 30.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json", **(headers or {})},
        )

    async def get(self, endpoint, body=None, params=None, headers=None) -> Any:
        return await self._request("GET", endpoint, body, params, headers)

    async def query(self, endpoint, body=None, params=None, headers=None) -> Any:
        return await self._request("GET", endpoint, body, params, headers)

    async def create(self, endpoint, body=None, params=None, headers=None) -> Any:
        return await self._request("POST", endpoint, body, params, headers)

    async def update(self, endpoint, body=None, params=None, headers=None) -> Any:
        return await self._request("PUT", endpoint, body, params, headers)

    async def delete(self, endpoint, body=None, params=None, headers=None) -> Any:
        return await self._request("DELETE", endpoint, body, params, headers)

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(
        self, method: str, endpoint: str, body: Any,
        params: dict | None, headers: dict | None,
    ) -> Any:
        try:
            response = await self.client.request(
                method, endpoint,
                json=body, params=params, headers=headers,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning(
                f"{method} timed out",
                extra={"endpoint": endpoint, "error_code": "TRANSPORT_TIMEOUT"},
            )
            raise TransportTimeoutError(endpoint) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(
                f"{method} returned HTTP {status}",
                extra={"endpoint": endpoint, "status_code": status},
            )
            if status == 404:
                raise ResourceNotFoundError(endpoint) from e
            raise TransportError(f"HTTP {status}", endpoint, status) from e
        except httpx.HTTPError as e:
            logger.error(
                f"{method} failed: {e}",
                extra={"endpoint": endpoint, "error_code": "TRANSPORT_ERROR"},
            )
            raise TransportError(str(e) or type(e).__name__, endpoint) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                "response body is not JSON", endpoint, response.status_code,
            ) from e
