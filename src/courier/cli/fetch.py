"""
CLI: ``courier fetch`` — send the same request N times, K at a time.
"""

from __future__ import annotations

import asyncio

import typer
from rich.markup import escape
from rich.table import Table

from courier.cli.utils import console, err_console, print_json, status_style
from courier.core.cancellation import CancellationToken
from courier.core.errors import CancellationError, ValidationError
from courier.core.settings import CourierSettings, get_settings
from courier.http.concurrent import HttpConcurrentProcessor, HttpTaskDescriptor, request_factory
from courier.http.pipeline import build_pipeline, create_client


async def run_fetch(
    url: str,
    settings: CourierSettings,
    *,
    count: int,
    concurrency: int,
    cache_minutes: int,
    timeout: float | None = None,
) -> list[HttpTaskDescriptor]:
    """Run the concurrent processor over the standard pipeline."""
    cancellation = CancellationToken()
    if timeout:
        cancellation.cancel_after(timeout)

    async with create_client(settings) as client:
        sender = build_pipeline(client, settings)
        processor = HttpConcurrentProcessor(
            request_factory(url, cache_duration_minutes=cache_minutes), sender
        )
        results = await processor.run(count, concurrency, cancellation)
    return sorted(results, key=lambda t: t.task_id)


def fetch(
    url: str = typer.Argument(..., help="URL to request"),
    count: int | None = typer.Option(None, "--count", "-n", help="Number of requests"),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c", help="Requests in flight at once"),
    cache_minutes: int = typer.Option(0, "--cache-minutes", help="Cache TTL per request (0 disables)"),
    retries: int | None = typer.Option(None, "--retries", "-r", help="Retries per request"),
    timeout: float | None = typer.Option(None, "--timeout", help="Cancel the whole run after N seconds"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Fetch URL repeatedly through the resilient pipeline."""
    settings = get_settings()
    overrides = {"max_retry_attempts": retries} if retries is not None else {}
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        results = asyncio.run(
            run_fetch(
                url,
                settings,
                count=count if count is not None else settings.max_task_count,
                concurrency=concurrency if concurrency is not None else settings.max_concurrency,
                cache_minutes=cache_minutes,
                timeout=timeout,
            )
        )
    except ValidationError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=2) from e
    except CancellationError as e:
        err_console.print(f"[bold red]Cancelled[/bold red]: {e.message}")
        raise typer.Exit(code=1) from e

    if as_json:
        print_json(
            [
                {
                    "task_id": t.task_id,
                    "duration_ms": t.duration_ms,
                    "error": t.error,
                    **t.request.to_dict(),
                }
                for t in results
            ]
        )
        return

    table = Table(title=f"{url} ({len(results)} requests)")
    table.add_column("Task", justify="right")
    table.add_column("Status", justify="right")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Retries", justify="right")
    table.add_column("Errors")
    for t in results:
        unit = t.request
        style = status_style(unit.status_code)
        errors = "; ".join(unit.errors + ([t.error] if t.error else []))
        table.add_row(
            str(t.task_id),
            f"[{style}]{unit.status_code}[/{style}]",
            f"{t.duration_ms:.1f}",
            str(unit.retries),
            escape(errors) if errors else "[dim]-[/dim]",
        )
    console.print(table)

    succeeded = sum(1 for t in results if t.request.succeeded)
    console.print(f"[bold]{succeeded}/{len(results)}[/bold] succeeded")
    if succeeded < len(results):
        raise typer.Exit(code=1)
