"""Fetch outcome — the tagged success/failure value handed to every callback.

A raw transport reply exposes an optional payload AND an optional error,
which admits the impossible both-or-neither states. FetchOutcome collapses
that into exactly one of two variants:

    Success(payload="...")
    Failure(reason=FetchErrorKind.REQUEST_FAILED, cause="...")

Both are frozen pydantic models discriminated on ``kind``, so an outcome
round-trips through JSON (trace files, CLI output) without losing its tag.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class FetchErrorKind(str, Enum):
    """Every way a fetch can fail."""

    BAD_IDENTIFIER = "bad_identifier"  # identifier did not parse; transport never called
    REQUEST_FAILED = "request_failed"  # transport reported an error
    UNKNOWN = "unknown"  # transport returned neither payload nor error


class FetchError(Exception):
    """Raised by ``Failure.get()`` — the only place a failure becomes an exception."""

    def __init__(self, reason: FetchErrorKind, cause: str | None = None) -> None:
        self.reason = reason
        self.cause = cause
        message = reason.value if not cause else f"{reason.value}: {cause}"
        super().__init__(message)


class Success(BaseModel):
    """A fetch that produced a decoded text payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["success"] = "success"
    payload: str = Field(description="Transport payload decoded with the fixed text encoding")

    @property
    def is_success(self) -> bool:
        return True

    def get(self) -> str:
        return self.payload

    def map(self, fn: Callable[[str], str]) -> Success:
        """Transform the payload, keeping the outcome a Success."""
        return Success(payload=fn(self.payload))


class Failure(BaseModel):
    """A fetch that ended in one of the FetchErrorKind categories."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["failure"] = "failure"
    reason: FetchErrorKind
    cause: str | None = Field(
        default=None,
        description="Underlying error text, kept as auxiliary context only",
    )

    @property
    def is_success(self) -> bool:
        return False

    def get(self) -> str:
        raise FetchError(self.reason, self.cause)

    def map(self, fn: Callable[[str], str]) -> Failure:
        return self


FetchOutcome = Annotated[Union[Success, Failure], Field(discriminator="kind")]
