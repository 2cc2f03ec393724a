"""
Engine construction for CLI commands.

Each command opens an engine from the layered configuration, runs, and
closes it again so background remote deletes finish before the process
exits.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from pydantic import ValidationError

from tasksync.cli.errors import ExitCode, exit_code_for, print_error
from tasksync.core.config import load_config
from tasksync.core.connectivity import ConnectivitySignal
from tasksync.core.errors import TaskSyncError
from tasksync.core.sync import SyncEngine


def is_offline(ctx: typer.Context) -> bool:
    """The global --offline flag, looked up through parent contexts."""
    current: typer.Context | None = ctx
    while current is not None:
        if isinstance(current.obj, dict) and "offline" in current.obj:
            return bool(current.obj["offline"])
        current = current.parent  # type: ignore[assignment]
    return False


@contextmanager
def open_engine(ctx: typer.Context) -> Iterator[SyncEngine]:
    """
    Yield a configured SyncEngine and translate engine errors to exits.

    The remote counts as reachable when one is configured and --offline
    was not given.
    """
    try:
        config = load_config()
    except ValidationError as e:
        print_error("Invalid configuration", reason=str(e), solution="check .tasksync.json")
        raise typer.Exit(ExitCode.USER_ERROR)

    connectivity = ConnectivitySignal(reachable=config.remote_configured and not is_offline(ctx))
    try:
        engine = SyncEngine.from_config(config, connectivity=connectivity)
    except TaskSyncError as e:
        raise typer.Exit(exit_code_for(e))

    try:
        yield engine
    except TaskSyncError as e:
        raise typer.Exit(exit_code_for(e))
    finally:
        engine.close()
