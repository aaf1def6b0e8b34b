"""
Root Typer application for the courier CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="courier",
    help="courier — resilient HTTP requests and bounded-concurrency fan-out.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from courier import __version__

        typer.echo(f"courier {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override COURIER_LOG_LEVEL."),
) -> None:
    """courier CLI — fetch URLs through the resilient pipeline, inspect settings."""
    from courier.core.logging import configure_from_settings
    from courier.core.settings import get_settings

    configure_from_settings(get_settings(), level=log_level)


# ── Sub-command registration ─────────────────────────────────────────────

from courier.cli.config import app as config_app  # noqa: E402
from courier.cli.fetch import fetch  # noqa: E402

app.command("fetch")(fetch)
app.add_typer(config_app, name="config", help="Configuration inspection.")
