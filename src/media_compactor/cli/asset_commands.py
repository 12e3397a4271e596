import asyncio
import json
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.progress import Progress

from media_compactor.api import build_orchestrator
from media_compactor.config import Config
from media_compactor.exceptions import ConfigurationError, MediaCompactorError
from media_compactor.orchestrator import CompressionReport
from media_compactor.probe import AssetProbe, PresentAsset
from media_compactor.retention import RetentionManager

console = Console()


def _report_to_dict(report: CompressionReport) -> dict:
    data = {
        "path": report.path,
        "reason": report.reason.value,
        "strategy_id": report.strategy_id,
        "attempts": report.attempts,
        "processing_ms": report.processing_ms,
    }
    if isinstance(report.source, PresentAsset):
        data["source_size_mb"] = report.source.size_mb
    if isinstance(report.output, PresentAsset):
        data["output_size_mb"] = report.output.size_mb
    return data


def probe_command(
    path: Path = typer.Argument(..., help="Path of the asset to inspect."),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Show whether an asset exists and how large it is."""
    info = asyncio.run(AssetProbe().probe(path))
    if json_output:
        data = {"path": info.path, "exists": info.exists}
        if isinstance(info, PresentAsset):
            data.update(size_bytes=info.size_bytes, size_mb=info.size_mb)
        else:
            data["reason"] = info.reason
        typer.echo(json.dumps(data))
        return
    if isinstance(info, PresentAsset):
        typer.echo(f"{info.path}: {info.size_mb}MB ({info.size_bytes} bytes)")
    else:
        typer.secho(f"{info.path}: not usable ({info.reason})", fg=typer.colors.YELLOW)


def compress_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Path of the asset to compress."),
    max_target_mb: Optional[float] = typer.Option(
        None, "--max-target-mb", help="Upper bound for the compressed size in MB."
    ),
    min_size_mb: Optional[float] = typer.Option(
        None, "--min-size-mb", help="Assets smaller than this are left alone."
    ),
    ratio: Optional[float] = typer.Option(
        None, "--ratio", help="Target fraction of the source size, between 0 and 1."
    ),
    strategy_id: Optional[str] = typer.Option(
        None, "--strategy", "-s", help="Compression strategy ID. Overrides the global default."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Produce a size-bounded copy of an asset and print the path to use."""
    config: Config = ctx.obj["config"]
    try:
        compression_config = config.compression_config(
            max_target_mb=max_target_mb,
            min_size_to_act_mb=min_size_mb,
            target_ratio=ratio,
        )
    except ValidationError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        orchestrator = build_orchestrator(strategy_id, config=config)
    except KeyError as e:
        typer.secho(f"Unknown compression strategy {e}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except MediaCompactorError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if json_output:
        report = asyncio.run(orchestrator.produce_report(path, compression_config))
        typer.echo(json.dumps(_report_to_dict(report)))
        return

    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Compressing", total=1.0)
        compression_config.on_progress = lambda value: progress.update(task, completed=value)
        report = asyncio.run(orchestrator.produce_report(path, compression_config))

    color = typer.colors.GREEN if report.compressed else typer.colors.YELLOW
    typer.secho(f"{report.reason.value}: {report.path}", fg=color)


def purge_command(
    ctx: typer.Context,
    older_than_hours: Optional[float] = typer.Option(
        None,
        "--older-than-hours",
        help="Retention window in hours. Defaults to the configured retention_hours.",
    ),
) -> None:
    """Delete generated files older than the retention window."""
    config: Config = ctx.obj["config"]
    try:
        window = (
            timedelta(hours=older_than_hours)
            if older_than_hours is not None
            else config.retention_window()
        )
    except ConfigurationError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    retention = RetentionManager(config.working_directory())
    removed = asyncio.run(retention.purge_stale(window))
    typer.echo(f"Removed {len(removed)} generated file(s) from {retention.working_dir}")
