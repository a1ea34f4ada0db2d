"""Transport collaborator — the thing that actually performs the I/O.

The fetcher never talks to the network directly. It calls
``await transport.request(locator)`` exactly once per valid identifier and
gets back a TransportReply: an optional payload and an optional error, in
any combination. Turning that loose pair into a single outcome is the
fetcher's job, not the transport's.

HttpxTransport is the stock implementation: single lazily-created
httpx.AsyncClient, GET only, HTTP errors reported in the reply instead of
raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx
import structlog

from asyncfetch.config import settings

logger = structlog.get_logger().bind(component="transport")


@dataclass(frozen=True)
class TransportReply:
    """Raw transport result. Deliberately permits payload+error and neither."""

    payload: bytes | None = None
    error: BaseException | None = None


@runtime_checkable
class Transport(Protocol):
    async def request(self, locator: httpx.URL) -> TransportReply: ...


class HttpxTransport:
    """GET-over-HTTP transport backed by httpx.AsyncClient.

    Usable as an async context manager; otherwise call ``close()`` when done.
    """

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str | None = None,
        follow_redirects: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.user_agent = user_agent or settings.user_agent
        self.follow_redirects = (
            follow_redirects if follow_redirects is not None else settings.follow_redirects
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                follow_redirects=self.follow_redirects,
                transport=self._transport,
            )
        return self._client

    async def request(self, locator: httpx.URL) -> TransportReply:
        client = await self._get_client()
        try:
            response = await client.get(locator)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("request_failed", url=str(locator), error=str(e))
            return TransportReply(error=e)

        logger.debug(
            "request_ok",
            url=str(locator),
            status=response.status_code,
            size=len(response.content),
        )
        return TransportReply(payload=response.content)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
