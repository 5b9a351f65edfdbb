"""
CLI: ``spindle config`` — configuration inspection.
"""

from __future__ import annotations

import typer

from spindle.cli.utils import console, print_dict

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    env: bool = typer.Option(False, "--env", help="Output as SPINDLE_* assignments"),
) -> None:
    """Show the active settings."""
    from spindle.core.settings import get_settings

    settings = get_settings()

    if as_json:
        console.print_json(settings.model_dump_json())
        return

    if env:
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"SPINDLE_{key.upper()}={value}")
        return

    print_dict(settings.model_dump(), title="Settings")
