"""Async HTTP client wrapper with timeout configuration."""

from typing import Any, Dict, Optional

import httpx


class AsyncHTTPClient:
    """
    Async HTTP client wrapper around httpx.AsyncClient.

    Provides:
    - A per-call timeout bounding every marketplace request
    - Connection pooling via httpx
    - Context manager for proper lifecycle management
    - An optional transport so tests can route requests to an in-process app
    """

    def __init__(
        self,
        connect_timeout: float = 3.0,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            connect_timeout: Connection timeout in seconds
            request_timeout: Read/write/pool timeout in seconds
            transport: Custom httpx transport (e.g. httpx.ASGITransport in tests)
            headers: Default headers sent with every request
        """
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout
        self.transport = transport
        self.headers = headers or {"Accept": "application/json"}
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Enter async context manager."""
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        await self.aclose()

    async def open(self) -> None:
        """Create the underlying client; safe to call more than once."""
        if self._client is not None:
            return
        timeout = httpx.Timeout(self.request_timeout, connect=self.connect_timeout)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=self.transport,
            headers=self.headers,
        )

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> httpx.Response:
        """Perform GET request."""
        return await self._require_client().get(url, params=params, **kwargs)

    async def post(
        self,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> httpx.Response:
        """Perform POST request with a JSON body."""
        return await self._require_client().post(url, json=json, **kwargs)
