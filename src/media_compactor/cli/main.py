import logging
from pathlib import Path
from typing import Optional

import typer

from media_compactor import __version__
from media_compactor.config import Config
from media_compactor.logging_utils import configure_logging, set_library_log_level
from media_compactor.plugin_loader import load_plugins

from .asset_commands import compress_command, probe_command, purge_command
from .config_commands import config_app
from .strategy_commands import strategy_app

# --- Main Application ---
app = typer.Typer(
    help="Media Compactor: size-bound media assets with safe fallback and clean up generated copies."
)

app.add_typer(strategy_app, name="strategy")
app.add_typer(config_app, name="config")

app.command("probe")(probe_command)
app.command("compress")(compress_command)
app.command("purge")(purge_command)


def version_callback(value: bool):
    if value:
        typer.echo(f"Media Compactor version: {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Path to write debug logs. If not set, logs are not written to file.",
        resolve_path=True,
        show_default=False,
    ),
    verbose: Optional[bool] = typer.Option(
        None,
        "--verbose",
        "-V",
        help="Enable verbose (DEBUG level) logging.",
        show_default=False,
    ),
    storage_root: Optional[str] = typer.Option(
        None,
        "--storage-root",
        help="Application storage root holding the working directory. Overrides env var and config.",
        show_default=False,
    ),
    strategy_id: Optional[str] = typer.Option(
        None,
        "--strategy",
        help="Default compression strategy ID. Overrides env var and config.",
        show_default=False,
    ),
    version: Optional[bool] = typer.Option(
        None,
        "-v",
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the application version and exit.",
    ),
):
    """
    Media Compactor CLI main entry point.
    Resolves global options (logging, storage root, default strategy) for subcommands.
    """
    if ctx.obj is None:
        ctx.obj = {}

    # CLI options override env vars and config files
    config = Config()
    config.update_from_cli("verbose", verbose)
    config.update_from_cli("log_file", str(log_file) if log_file else None)
    if storage_root:
        config.update_from_cli("storage_root", str(Path(storage_root).expanduser().resolve()))
    config.update_from_cli("default_strategy_id", strategy_id)

    resolved_verbose = config.get("verbose")
    level = logging.DEBUG if resolved_verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    set_library_log_level(level)
    if config.get("log_file"):
        configure_logging(Path(config.get("log_file")), level)

    ctx.obj["config"] = config
    ctx.obj["verbose"] = resolved_verbose

    try:
        load_plugins()
    except Exception as e:
        logging.error(f"Error during plugin loading: {e}")

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
