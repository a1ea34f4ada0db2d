"""asyncfetch — non-blocking fetch with a single, typed completion outcome."""

from asyncfetch.fetcher import AsyncFetcher
from asyncfetch.models.outcome import (
    Failure,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    Success,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncFetcher",
    "Failure",
    "FetchError",
    "FetchErrorKind",
    "FetchOutcome",
    "Success",
    "__version__",
]
