"""
CLI utility helpers — output formatting.
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


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a flat mapping as a two-column table."""
    table = Table(title=title or None, show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(str(key), str(value))
    console.print(table)


def print_futures(summary: dict[str, Any], *, title: str = "Tasks") -> None:
    """Render an ``ExecutorResult.to_dict()`` summary, guards included."""
    table = Table(title=title)
    table.add_column("Pool", style="dim")
    table.add_column("Task")
    table.add_column("State")
    table.add_column("Periodic")
    table.add_column("Runs", justify="right")

    def _rows(node: dict[str, Any]) -> None:
        for future in node["futures"]:
            state = future["state"]
            color = {"FINISHED": "green", "CANCELLED": "yellow"}.get(state, "cyan")
            table.add_row(
                node["pool"],
                future["name"],
                f"[{color}]{state}[/{color}]",
                "yes" if future["periodic"] else "no",
                str(future["runs"]),
            )
        for child in node["timeout_results"]:
            _rows(child)

    _rows(summary)
    console.print(table)
