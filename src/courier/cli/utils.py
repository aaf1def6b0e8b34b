"""
CLI utility helpers: consoles and table rendering.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_mapping(data: dict[str, Any], *, title: str = "") -> None:
    """Two-column key/value table."""
    table = Table(title=title or None)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, str(value))
    console.print(table)


def status_style(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "green"
    if status_code in (408, 503) or status_code >= 500:
        return "red"
    return "yellow"
