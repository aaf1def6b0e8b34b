"""
CLI: ``courier config`` — inspect the effective settings.
"""

from __future__ import annotations

import typer

from courier.cli.utils import console, print_mapping

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show current configuration (defaults, .env and COURIER_* variables)."""
    from courier.core.settings import get_settings

    settings = get_settings()

    if as_json:
        console.print_json(settings.model_dump_json())
        return

    print_mapping(settings.model_dump(), title="courier settings")


@app.command("env")
def show_env() -> None:
    """Print settings as COURIER_* environment assignments."""
    from courier.core.settings import get_settings

    settings = get_settings()
    for key, value in sorted(settings.model_dump().items()):
        console.print(f"COURIER_{key.upper()}={value}")
