"""
WAT CLI — The Interface

  wat train     (regenerate training data and print it as JSON)
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import typer
from loguru import logger
from rich.console import Console

from wat import __version__
from wat.cancel import CancelScope
from wat.commands import populate_at
from wat.config_loader import load_config
from wat.logs import dump_cmd_log_groups
from wat.train import Trainer
from wat.workspace import WorkspaceError, get_or_init_workspace

app = typer.Typer(
    name="wat",
    help="WAT — learn what to test after an edit.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        typer.echo(f"WAT v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    pass


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def train(
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Stop training after this many seconds"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Train a model to make decisions on what to test."""
    _configure_logging(verbose)

    try:
        ws = get_or_init_workspace()
    except WorkspaceError as e:
        console.print(f"[red]💥 GetWorkspace: {e}[/]")
        raise typer.Exit(1)

    try:
        config = load_config(ws.root)
    except Exception as e:
        ws.fatal("LoadConfig", e)

    try:
        cmds = populate_at(ws, config)
    except Exception as e:
        ws.fatal("List", e)

    trainer = Trainer(ws, config=config)
    try:
        # ttl=0 always regenerates.
        logs = trainer.train(cmds, timedelta(0), scope=CancelScope(timeout=timeout))
    except Exception as e:
        ws.fatal("Train", e)

    try:
        typer.echo(dump_cmd_log_groups(logs))
    except Exception as e:
        ws.fatal("Encode", e)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    logger.remove()
    if verbose:
        logger.add(
            lambda msg: console.print(f"[dim]{msg}[/]", highlight=False),
            level="DEBUG",
            format="{time:HH:mm:ss} | {level:<7} | {message}",
        )
    else:
        logger.add(
            lambda msg: console.print(f"[dim]{msg}[/]", highlight=False),
            level="WARNING",
            format="{message}",
        )


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
