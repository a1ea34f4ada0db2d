"""AsyncFetcher — identifier in, exactly one FetchOutcome out, via callback.

    fetcher = AsyncFetcher(HttpxTransport())
    fetcher.fetch("https://example.com/x", on_complete)

``fetch`` returns immediately. The outcome is resolved from the transport
reply and handed to ``on_complete`` on the fetcher's event loop, never
inline in ``fetch`` and never on whatever thread the transport happened to
finish on. Every branch (bad identifier, transport error, contract
violation, cancellation) goes through that same delivery path, so the
callback runs exactly once.

Resolution of a transport reply:
    error present            → Failure(REQUEST_FAILED)   (error_precedence="error")
    non-empty payload        → Success(decoded payload)
    neither                  → Failure(UNKNOWN), logged as a contract violation
With error_precedence="payload" a non-empty payload wins over a co-present error.
"""

from __future__ import annotations

import asyncio
import codecs
import functools
import inspect
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from asyncfetch.config import settings
from asyncfetch.models.outcome import Failure, FetchErrorKind, FetchOutcome, Success
from asyncfetch.models.trace import FetchEvent, TraceBus
from asyncfetch.tools.locator import parse_locator
from asyncfetch.tools.transport import Transport, TransportReply
from asyncfetch.utils import get_logger

logger = get_logger("fetcher")

OnComplete = Callable[[FetchOutcome], Any]

_PRECEDENCES = ("error", "payload")


class _Completion:
    """One fetch() call's callback plus its fired-once flag."""

    __slots__ = ("callback", "identifier", "correlation_id", "started", "fired")

    def __init__(self, callback: OnComplete, identifier: str, correlation_id: str) -> None:
        self.callback = callback
        self.identifier = identifier
        self.correlation_id = correlation_id
        self.started = time.monotonic()
        self.fired = False


class AsyncFetcher:
    """Non-blocking fetch with a single typed completion.

    Args:
        transport:        Collaborator performing the I/O (see tools.transport).
        loop:             Execution context for every callback. If omitted, the
                          loop running the first ``fetch`` call is adopted.
        trace:            TraceBus receiving lifecycle events (default: a new bus
                          holding the last ``settings.trace_max_events``).
        text_encoding:    Fixed encoding for success payloads.
        allowed_schemes:  URL schemes accepted as identifiers.
        error_precedence: "error" or "payload" — see module docstring.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        trace: TraceBus | None = None,
        text_encoding: str | None = None,
        allowed_schemes: Iterable[str] | None = None,
        error_precedence: str | None = None,
    ) -> None:
        self.transport = transport
        self.trace = TraceBus() if trace is None else trace
        self.text_encoding = settings.text_encoding if text_encoding is None else text_encoding
        self.allowed_schemes = tuple(
            settings.allowed_schemes if allowed_schemes is None else allowed_schemes
        )
        self.error_precedence = (
            settings.error_precedence if error_precedence is None else error_precedence
        )
        self._loop = loop
        self._inflight: set[asyncio.Future] = set()

        codecs.lookup(self.text_encoding)  # LookupError on an unknown encoding
        if self.error_precedence not in _PRECEDENCES:
            raise ValueError(
                f"error_precedence must be one of {_PRECEDENCES}, got {self.error_precedence!r}"
            )

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        return self._loop

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    # ── Public API ────────────────────────────────────────────────────────

    def fetch(
        self,
        identifier: str,
        on_complete: OnComplete,
        *,
        correlation_id: str | None = None,
    ) -> None:
        """Start fetching *identifier*; ``on_complete`` receives the outcome later.

        Safe to call from any thread once the fetcher is bound to a loop.
        """
        loop = self._bind_loop()
        completion = _Completion(on_complete, identifier, correlation_id or str(uuid.uuid4()))
        if _running_loop() is loop:
            self._start(completion)
        else:
            loop.call_soon_threadsafe(self._start, completion)

    async def fetch_outcome(self, identifier: str, *, correlation_id: str | None = None) -> FetchOutcome:
        """Future-based form of ``fetch``: await the outcome instead of a callback."""
        loop = self._bind_loop()
        future: asyncio.Future[FetchOutcome] = loop.create_future()

        def _resolve(outcome: FetchOutcome) -> None:
            if not future.done():
                future.set_result(outcome)

        self.fetch(identifier, _resolve, correlation_id=correlation_id)
        return await future

    async def drain(self) -> None:
        """Wait until every in-flight fetch (and async callback) has finished."""
        while self._inflight:
            await asyncio.wait(list(self._inflight))

    # ── Scheduling ────────────────────────────────────────────────────────

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            loop = _running_loop()
            if loop is None:
                raise RuntimeError(
                    "AsyncFetcher has no event loop: pass loop=... or call fetch() "
                    "from inside a running loop"
                )
            self._loop = loop
        return self._loop

    def _start(self, completion: _Completion) -> None:
        task = self._loop.create_task(self._run(completion))
        self._track(task)
        task.add_done_callback(functools.partial(self._on_run_done, completion))

    def _track(self, task: asyncio.Future) -> None:
        self._inflight.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Future) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("task_failed", error=str(exc), exc_info=exc)

    def _on_run_done(self, completion: _Completion, task: asyncio.Future) -> None:
        # However the task ended, the caller is still owed one outcome
        if completion.fired:
            return
        if task.cancelled():
            logger.info(
                "fetch_cancelled",
                identifier=completion.identifier,
                correlation_id=completion.correlation_id,
            )
            outcome = Failure(reason=FetchErrorKind.REQUEST_FAILED, cause="cancelled")
        else:
            outcome = Failure(reason=FetchErrorKind.UNKNOWN, cause=_describe(task.exception()))
        self._dispatch(completion, outcome)

    # ── Fetch pipeline ────────────────────────────────────────────────────

    async def _run(self, completion: _Completion) -> None:
        outcome = await self._obtain(completion)
        await self._dispatch(completion, outcome)

    async def _obtain(self, completion: _Completion) -> FetchOutcome:
        identifier = completion.identifier
        self._emit(completion, "ingress")

        locator = parse_locator(identifier, self.allowed_schemes)
        if locator is None:
            logger.info(
                "bad_identifier",
                identifier=identifier,
                correlation_id=completion.correlation_id,
            )
            self._emit(completion, "rejected")
            return Failure(reason=FetchErrorKind.BAD_IDENTIFIER)

        self._emit(completion, "dispatch", detail={"url": str(locator)})
        try:
            reply = await self.transport.request(locator)
        except Exception as e:
            logger.error("transport_raised", url=str(locator), error=str(e))
            reply = TransportReply(error=e)

        self._emit(
            completion,
            "reply",
            detail={"payload_bytes": len(reply.payload) if reply.payload is not None else None},
            error=_describe(reply.error) if reply.error is not None else "",
        )
        return self._resolve(reply, completion)

    def _resolve(self, reply: TransportReply, completion: _Completion) -> FetchOutcome:
        has_payload = bool(reply.payload)
        has_error = reply.error is not None

        if has_error and (self.error_precedence == "error" or not has_payload):
            return Failure(reason=FetchErrorKind.REQUEST_FAILED, cause=_describe(reply.error))
        if has_payload:
            return Success(payload=reply.payload.decode(self.text_encoding, errors="replace"))

        logger.warning(
            "transport_contract_violation",
            identifier=completion.identifier,
            correlation_id=completion.correlation_id,
            detail="reply carried neither payload nor error",
        )
        return Failure(reason=FetchErrorKind.UNKNOWN)

    # ── Delivery ──────────────────────────────────────────────────────────

    def _dispatch(self, completion: _Completion, outcome: FetchOutcome) -> asyncio.Future:
        """Schedule delivery on the fetcher's loop; the future resolves once it ran."""
        delivered = self._loop.create_future()
        if completion.fired:
            delivered.set_result(None)
            return delivered
        completion.fired = True
        self._loop.call_soon_threadsafe(self._complete, completion, outcome, delivered)
        return delivered

    def _complete(
        self,
        completion: _Completion,
        outcome: FetchOutcome,
        delivered: asyncio.Future,
    ) -> None:
        detail: dict[str, Any] = {"kind": outcome.kind}
        error = ""
        if isinstance(outcome, Failure):
            detail["reason"] = outcome.reason.value
            error = outcome.cause or ""
        self._emit(completion, "complete", detail=detail, error=error)
        logger.debug(
            "fetch_complete",
            identifier=completion.identifier,
            correlation_id=completion.correlation_id,
            **detail,
        )

        try:
            result = completion.callback(outcome)
            if inspect.isawaitable(result):
                self._track(asyncio.ensure_future(result))
        finally:
            if not delivered.done():
                delivered.set_result(None)

    def _emit(
        self,
        completion: _Completion,
        event_type: str,
        detail: dict[str, Any] | None = None,
        error: str = "",
    ) -> None:
        self.trace.emit(
            FetchEvent(
                correlation_id=completion.correlation_id,
                event_type=event_type,
                identifier=str(completion.identifier),
                detail=detail or {},
                error=error,
                duration_ms=round((time.monotonic() - completion.started) * 1000, 2),
            )
        )


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__
