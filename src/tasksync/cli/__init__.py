"""
tasksync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from tasksync import __version__
from tasksync.cli import sync, task
from tasksync.core.config.env import load_layered_env

app = typer.Typer(
    name="tasksync",
    help="Offline-first task tracking with background sync",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging to stderr
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tasksync {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Treat the remote store as unreachable",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    tasksync - offline-first task tracking.

    Every change is saved locally first. When the remote store is reachable
    changes are pushed immediately; otherwise they wait for the next sync.

    Quick Start:
        export TASKSYNC_USER=alice
        export TASKSYNC_REMOTE_DIR=~/Dropbox/tasks   # or TASKSYNC_REMOTE_URL
        tasksync task add "Buy milk"
        tasksync sync status
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)
    ctx.obj = {"debug": debug, "offline": offline}


app.add_typer(task.app, name="task")
app.add_typer(sync.app, name="sync")


def cli_main() -> None:
    """Console script entry point."""
    app()
