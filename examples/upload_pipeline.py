"""Shrink a recording before handing it to an uploader.

Run with a path to a media file::

    python examples/upload_pipeline.py recording.mp4
    python examples/upload_pipeline.py recording.mp4 --strategy ffmpeg --fallback simulated

The simulated strategy is used by default; ``ffmpeg`` needs the binary on ``PATH``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from media_compactor import CompressionConfig
from media_compactor.api import probe_asset, produce_compression_report, purge_old_artifacts
from media_compactor.config import Config

app = typer.Typer(add_completion=False)


async def prepare_for_upload(path: Path, app_config: Config, strategy_id: str) -> str:
    info = await probe_asset(path)
    if not info.exists:
        typer.echo(f"{path} cannot be used ({info.reason})")
        return str(path)
    typer.echo(f"Source: {info.size_mb}MB")

    config = CompressionConfig(
        max_target_mb=15,
        on_progress=lambda value: typer.echo(f"  progress {value:.0%}"),
    )
    report = await produce_compression_report(
        path, config, strategy_id=strategy_id, app_config=app_config
    )
    typer.echo(
        f"Outcome: {report.reason.value} after {report.attempts} attempt(s) "
        f"in {report.processing_ms or 0:.0f}ms"
    )

    removed = await purge_old_artifacts(app_config=app_config)
    if removed:
        typer.echo(f"Cleaned up {len(removed)} stale file(s)")
    return report.path


@app.command()
def main(
    path: Path = typer.Argument(..., help="Recording to prepare."),
    strategy: str = typer.Option("simulated", help="Strategy for the first attempt."),
    fallback: Optional[str] = typer.Option(None, help="Strategy retried once on failure."),
) -> None:
    logging.basicConfig(level=logging.INFO)
    app_config = Config()
    app_config.update_from_cli("fallback_strategy_id", fallback)
    upload_path = asyncio.run(prepare_for_upload(path, app_config, strategy))
    typer.echo(f"Upload: {upload_path}")


if __name__ == "__main__":
    app()
