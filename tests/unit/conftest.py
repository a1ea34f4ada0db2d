"""Unit-test conftest — FakeTransport, callback recorder, and fetcher fixtures.

All fixtures here are available to every test under tests/unit/ without import.
"""

from __future__ import annotations

import asyncio
import threading

import httpx
import pytest

from asyncfetch.fetcher import AsyncFetcher
from asyncfetch.models.outcome import FetchOutcome
from asyncfetch.models.trace import TraceBus
from asyncfetch.tools.transport import TransportReply


# ─────────────────────────────────────────────────────────────────────────────
# FakeTransport — drop-in replacement for HttpxTransport
# ─────────────────────────────────────────────────────────────────────────────

class FakeTransport:
    """Configurable fake transport for unit tests.

    Args:
        payload:      Bytes placed in every reply (default: none).
        error:        Error placed in every reply (default: none).
        raises:       If set, request() raises this instead of replying.
        delay:        Seconds to sleep before replying.
        from_thread:  Build the reply on a worker thread, the way a blocking
                      client wrapped in asyncio.to_thread would.
    """

    def __init__(
        self,
        *,
        payload: bytes | None = None,
        error: BaseException | None = None,
        raises: BaseException | None = None,
        delay: float = 0.0,
        from_thread: bool = False,
    ) -> None:
        self.payload = payload
        self.error = error
        self.raises = raises
        self.delay = delay
        self.from_thread = from_thread
        # Every locator passed to request(), for assertions
        self.calls: list[httpx.URL] = []

    async def request(self, locator: httpx.URL) -> TransportReply:
        self.calls.append(locator)
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if self.raises:
            raise self.raises
        if self.from_thread:
            return await asyncio.to_thread(TransportReply, self.payload, self.error)
        return TransportReply(payload=self.payload, error=self.error)


class Recorder:
    """on_complete callback that remembers every outcome and the thread it ran on."""

    def __init__(self) -> None:
        self.outcomes: list[FetchOutcome] = []
        self.threads: list[int] = []
        self.done = asyncio.Event()

    def __call__(self, outcome: FetchOutcome) -> None:
        self.outcomes.append(outcome)
        self.threads.append(threading.get_ident())
        self.done.set()

    async def wait(self, timeout: float = 2.0) -> FetchOutcome:
        await asyncio.wait_for(self.done.wait(), timeout)
        return self.outcomes[0]


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_fetcher():
    """Factory: AsyncFetcher over the given transport with an in-memory trace."""

    def _make(transport, **kwargs) -> AsyncFetcher:
        kwargs.setdefault("trace", TraceBus(persist=False))
        return AsyncFetcher(transport, **kwargs)

    return _make


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_recorder():
    """Factory for extra recorders when a test needs more than one callback."""
    return Recorder


@pytest.fixture
def make_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport
