"""Transport adapters: the only code that touches the network."""

import logging
from typing import Protocol

import httpx

from src import config
from src.http.models import TransportResponse

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Sends one request. Raises on any failure that left no response."""

    async def execute(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: str | bytes | None,
    ) -> TransportResponse: ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Redirects are not followed: a 3xx comes back to the caller, and any
    follow-up request goes through the URL guard again.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS,
            follow_redirects=False,
        )

    async def execute(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: str | bytes | None,
    ) -> TransportResponse:
        try:
            response = await self._client.request(
                method, url, headers=headers, content=body
            )
        finally:
            # Cookie state lives in the RequestClient's jar, not in httpx.
            self._client.cookies.clear()
        return TransportResponse(
            status=response.status_code,
            headers=response.headers.multi_items(),
            body=response.content,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
