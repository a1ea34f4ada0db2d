"""asyncfetch configuration — loaded from .env via pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class FetchSettings(BaseSettings):
    """All asyncfetch configuration. Reads from .env file and environment variables."""

    # --- HTTP transport ---
    request_timeout: float = Field(
        default=30.0,
        description="Seconds before the HTTP transport gives up on a request",
    )
    user_agent: str = Field(
        default="asyncfetch/0.1",
        description="User-Agent header sent by HttpxTransport",
    )
    follow_redirects: bool = Field(default=True)

    # --- Fetcher policy ---
    text_encoding: str = Field(
        default="utf-8",
        description="Fixed encoding used to decode every success payload",
    )
    allowed_schemes: list[str] = Field(
        default_factory=lambda: ["http", "https"],
        description="URL schemes accepted as valid identifiers",
    )
    error_precedence: Literal["error", "payload"] = Field(
        default="error",
        description="Which wins when a reply carries both payload and error",
    )

    # --- Fetch traces ---
    trace_dir: Path = Field(
        default=Path.home() / ".asyncfetch" / "traces",
        description="Where persisted fetch traces are written",
    )
    trace_persist: bool = Field(default=False)
    trace_max_events: int = Field(
        default=1000,
        ge=1,
        description="Events a TraceBus keeps in memory; older ones are dropped",
    )

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="console",
        description="Log format: 'console' for dev, 'json' for production",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ASYNCFETCH_",
        "extra": "ignore",
    }


# Singleton — import this everywhere
settings = FetchSettings()
