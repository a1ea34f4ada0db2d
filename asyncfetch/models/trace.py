"""Fetch traces — one event per lifecycle step of a fetch.

Every fetch gets a correlation id. The fetcher emits:

    ingress   identifier received
    rejected  identifier failed to parse (no transport call follows)
    dispatch  transport.request() issued
    reply     transport answered (payload size / error)
    complete  outcome handed to the callback

The TraceBus keeps recent events in memory and, when persistence is on, appends
them to <trace_dir>/<correlation_id>.jsonl so ``asyncfetch trace`` works
across processes.
"""

from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from asyncfetch.config import settings

logger = structlog.get_logger().bind(component="trace")


class FetchEvent(BaseModel):
    """A single step in the life of one fetch."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str = Field(description="Ties this event to one fetch() call")
    event_type: str = Field(
        description="Type: ingress, rejected, dispatch, reply, complete"
    )
    identifier: str = Field(default="", description="Identifier passed to fetch()")
    detail: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific data: payload size, outcome kind, reason, etc.",
    )
    error: str = Field(default="", description="Error text if this step failed")
    duration_ms: float = Field(default=0.0, description="Time since ingress, if applicable")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FetchTrace(BaseModel):
    """All events of one fetch, in time order."""

    correlation_id: str
    events: list[FetchEvent] = Field(default_factory=list)
    identifier: str = ""
    outcome_kind: str = ""
    total_duration_ms: float = 0.0
    success: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None


class TraceBus:
    """Event store with optional JSONL persistence.

    Memory holds at most ``max_events`` events, oldest dropped first.
    Persisted files keep every event.
    """

    def __init__(
        self,
        trace_dir: Path | None = None,
        persist: bool | None = None,
        max_events: int | None = None,
    ) -> None:
        limit = settings.trace_max_events if max_events is None else max_events
        if limit < 1:
            raise ValueError(f"max_events must be at least 1, got {limit}")
        self._events: deque[FetchEvent] = deque(maxlen=limit)
        self._trace_dir = trace_dir or settings.trace_dir
        self._persist = settings.trace_persist if persist is None else persist

    def emit(self, event: FetchEvent) -> None:
        """Store an event in memory and append it to its trace file."""
        self._events.append(event)
        if self._persist:
            self._write_to_file(event)

    def _write_to_file(self, event: FetchEvent) -> None:
        try:
            self._trace_dir.mkdir(parents=True, exist_ok=True)
            trace_file = self._trace_dir / f"{event.correlation_id}.jsonl"
            with trace_file.open("a", encoding="utf-8") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError as e:
            # Tracing must not break delivery of the outcome
            logger.warning("trace_write_failed", correlation_id=event.correlation_id, error=str(e))

    def get_trace(self, correlation_id: str) -> FetchTrace:
        """Assemble a trace — memory first, then disk."""
        events = [e for e in self._events if e.correlation_id == correlation_id]
        if not events:
            events = self._load_from_file(correlation_id)

        events.sort(key=lambda e: e.timestamp)
        trace = FetchTrace(correlation_id=correlation_id, events=events)
        if not events:
            return trace

        trace.identifier = events[0].identifier
        trace.started_at = events[0].timestamp
        trace.completed_at = events[-1].timestamp
        total = (trace.completed_at - trace.started_at).total_seconds() * 1000
        trace.total_duration_ms = round(total, 2)

        complete = [e for e in events if e.event_type == "complete"]
        if complete:
            trace.outcome_kind = complete[-1].detail.get("kind", "")
            trace.success = trace.outcome_kind == "success"
        return trace

    def _load_from_file(self, correlation_id: str) -> list[FetchEvent]:
        trace_file = self._trace_dir / f"{correlation_id}.jsonl"
        if not trace_file.exists():
            return []
        events = []
        with trace_file.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(FetchEvent.model_validate_json(line))
                except ValidationError:
                    logger.warning("trace_line_invalid", file=str(trace_file), line=lineno)
        return events

    def list_traces(self, limit: int = 20) -> list[str]:
        """Recent persisted correlation ids, newest first."""
        if not self._trace_dir.exists():
            return []
        files = sorted(
            self._trace_dir.glob("*.jsonl"),
            key=lambda f: f.stat().st_mtime,
            reverse=True,
        )
        return [f.stem for f in files[:limit]]

    def clear(self) -> None:
        """Clear in-memory events (does not delete files)."""
        self._events.clear()

    @property
    def event_count(self) -> int:
        return len(self._events)

    @property
    def max_events(self) -> int:
        return self._events.maxlen
