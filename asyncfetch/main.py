"""asyncfetch CLI.

Commands:
    asyncfetch get       — Fetch one URL and show the outcome
    asyncfetch trace     — View the lifecycle events of a persisted fetch
    asyncfetch traces    — List recent persisted fetches
    asyncfetch version   — Show version
"""

from __future__ import annotations

import asyncio
import codecs
import uuid
from enum import Enum

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from asyncfetch.config import settings
from asyncfetch.utils import setup_logging

# Initialize logging on import
setup_logging()

app = typer.Typer(
    name="asyncfetch",
    help="Non-blocking fetch with a single, typed completion outcome",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


class Precedence(str, Enum):
    error = "error"
    payload = "payload"


def _check_encoding(value: str | None) -> str | None:
    if value is not None:
        try:
            codecs.lookup(value)
        except LookupError:
            raise typer.BadParameter(f"unknown text encoding {value!r}") from None
    return value


@app.callback()
def main(
    log_level: str = typer.Option(
        None, "--log-level", help="Override ASYNCFETCH_LOG_LEVEL (debug, info, warning, error)"
    ),
    log_format: str = typer.Option(None, "--log-format", help="console | json"),
):
    """Non-blocking fetch with a single, typed completion outcome."""
    if log_level is not None or log_format is not None:
        setup_logging(level=log_level, fmt=log_format)


# ── asyncfetch get ────────────────────────────────────────────


@app.command()
def get(
    url: str = typer.Argument(..., help="Identifier (URL) to fetch"),
    encoding: str = typer.Option(
        None, "--encoding", "-e", help="Text encoding for the payload", callback=_check_encoding
    ),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Request timeout in seconds"),
    error_precedence: Precedence = typer.Option(
        None,
        "--error-precedence",
        help="Who wins when the reply has payload AND error",
    ),
    max_chars: int = typer.Option(2000, "--max-chars", help="Truncate the shown payload"),
    trace: bool = typer.Option(
        settings.trace_persist, "--trace/--no-trace", help="Persist the fetch trace"
    ),
):
    """Fetch URL and print the outcome. Exit code 1 on any failure."""
    outcome, correlation_id = asyncio.run(
        _get(url, encoding, timeout, error_precedence.value if error_precedence else None, trace)
    )

    if outcome.is_success:
        body = outcome.payload
        if len(body) > max_chars:
            body = body[:max_chars] + f"\n… [{len(outcome.payload) - max_chars} more chars]"
        console.print(Panel(Text(body), title=f"[bold green]✅ success[/] {escape(url)}", border_style="green"))
    else:
        lines = f"[bold]{outcome.reason.value}[/]"
        if outcome.cause:
            lines += f"\n[dim]{escape(outcome.cause)}[/]"
        console.print(Panel(lines, title=f"[bold red]❌ failure[/] {escape(url)}", border_style="red"))

    console.print(f"[dim]correlation id: {correlation_id}[/]")
    if not outcome.is_success:
        raise typer.Exit(code=1)


async def _get(
    url: str,
    encoding: str | None,
    timeout: float | None,
    error_precedence: str | None,
    persist: bool,
):
    from asyncfetch.fetcher import AsyncFetcher
    from asyncfetch.models.trace import TraceBus
    from asyncfetch.tools.transport import HttpxTransport

    correlation_id = str(uuid.uuid4())
    async with HttpxTransport(timeout=timeout) as transport:
        fetcher = AsyncFetcher(
            transport,
            trace=TraceBus(persist=persist),
            text_encoding=encoding,
            error_precedence=error_precedence,
        )
        outcome = await fetcher.fetch_outcome(url, correlation_id=correlation_id)
        await fetcher.drain()
    return outcome, correlation_id


# ── asyncfetch trace ──────────────────────────────────────────


@app.command()
def trace(correlation_id: str = typer.Argument(..., help="Correlation id printed by `get`")):
    """Show every lifecycle event of one persisted fetch."""
    from asyncfetch.models.trace import TraceBus

    result = TraceBus(persist=False).get_trace(correlation_id)
    if not result.events:
        console.print(f"[yellow]No trace found for {correlation_id}[/]")
        raise typer.Exit(code=1)

    table = Table(title=f"Trace {correlation_id}", show_lines=False)
    table.add_column("Event", style="cyan")
    table.add_column("+ms", justify="right")
    table.add_column("Detail", style="white")
    table.add_column("Error", style="red")
    for event in result.events:
        detail = ", ".join(f"{k}={v}" for k, v in event.detail.items())
        table.add_row(event.event_type, f"{event.duration_ms:.1f}", detail, event.error)
    console.print(table)

    status = "[green]success[/]" if result.success else f"[red]{result.outcome_kind or 'incomplete'}[/]"
    console.print(f"{result.identifier} → {status} in {result.total_duration_ms:.1f} ms")


@app.command()
def traces(limit: int = typer.Option(20, "--limit", "-n", help="How many to list")):
    """List recent persisted fetch traces, newest first."""
    from asyncfetch.models.trace import TraceBus

    ids = TraceBus(persist=False).list_traces(limit=limit)
    if not ids:
        console.print("[dim]No persisted traces. Run `asyncfetch get URL --trace` first.[/]")
        return
    for cid in ids:
        console.print(cid)


# ── asyncfetch version ────────────────────────────────────────


@app.command()
def version():
    """📦 Show asyncfetch version."""
    from asyncfetch import __version__
    console.print(f"[bold cyan]asyncfetch[/] v{__version__}")


# ── Entry point ───────────────────────────────────────────────

if __name__ == "__main__":
    app()
