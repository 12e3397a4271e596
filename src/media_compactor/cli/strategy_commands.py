import json

import typer
from rich.console import Console
from rich.table import Table

from media_compactor.strategies import (
    all_strategy_metadata,
    available_strategies,
    get_strategy_metadata,
)

strategy_app = typer.Typer(help="Inspect available compression strategies.")
console = Console(width=200)


@strategy_app.command("list", help="Lists all available compression strategy IDs.")
def list_command() -> None:
    ids = available_strategies()
    meta = all_strategy_metadata()
    if not ids:
        typer.echo("No compression strategies found.")
        return
    table = Table(
        "Strategy ID",
        "Display Name",
        "Description",
        "Version",
        "Source",
        title="Available Compression Strategies",
    )
    for sid in ids:
        info = meta.get(sid, {})
        table.add_row(
            sid,
            info.get("display_name", sid) or sid,
            info.get("description") or "",
            info.get("version", "N/A") or "N/A",
            info.get("source", "built-in") or "built-in",
        )
    console.print(table)


@strategy_app.command("info", help="Show metadata for a specific strategy ID.")
def info_command(strategy_id: str) -> None:
    info = get_strategy_metadata(strategy_id)
    if not info:
        typer.secho(f"Strategy '{strategy_id}' not found.", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(info))
