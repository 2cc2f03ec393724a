"""
tasksync CLI - sync commands.

`tasksync sync` runs one reconciliation pass; `tasksync sync status`
shows how much work is still pending and when the last pass finished.
"""

import typer
from rich.console import Console
from rich.table import Table

from tasksync.cli.engine import open_engine
from tasksync.cli.errors import ExitCode
from tasksync.core.errors import Offline

console = Console()
app = typer.Typer(
    name="sync",
    help="Push pending changes to the remote store",
    no_args_is_help=False,
)


@app.callback(invoke_without_command=True)
def sync(
    ctx: typer.Context,
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Treat the remote store as unreachable",
    ),
) -> None:
    """
    Run a sync pass: push every pending task to the remote store.

    Tasks that fail to push stay pending and are retried on the next pass.

    Examples:
        tasksync sync
        tasksync sync status
    """
    if offline:
        ctx.obj = {**(ctx.obj or {}), "offline": True}
    if ctx.invoked_subcommand is not None:
        return

    with open_engine(ctx) as engine:
        try:
            result = engine.run_sync_pass()
        except Offline:
            console.print("[yellow]○[/yellow] Offline; changes stay pending")
            console.print(f"[dim]{engine.get_pending_sync_count()} pending[/dim]")
            raise typer.Exit(ExitCode.SUCCESS)

    if result.attempted == 0:
        console.print("[green]✓[/green] Nothing to sync")
        return

    console.print(f"[green]✓[/green] Synced {result.converged} task(s)")
    if result.failed:
        console.print(
            f"[yellow]⚠[/yellow]  {result.failed} task(s) could not be pushed; "
            "they will be retried on the next sync"
        )


@app.command()
def status(ctx: typer.Context) -> None:
    """
    Show sync status.

    Examples:
        tasksync sync status
    """
    with open_engine(ctx) as engine:
        pending = engine.get_pending_sync_count()
        last_pass = engine.get_last_pass_timestamp()
        last_error = engine.get_last_error()
        reachable = engine.connectivity.is_reachable()

    if pending == 0:
        console.print("[green]✓[/green] All tasks synced")
    else:
        console.print(f"[yellow]↑[/yellow] {pending} task(s) pending sync")

    table = Table(title="Sync Details", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Remote", "reachable" if reachable else "[dim]unreachable[/dim]")
    table.add_row("Pending", str(pending))
    if last_pass:
        table.add_row("Last sync", last_pass.astimezone().strftime("%Y-%m-%d %H:%M:%S"))
    else:
        table.add_row("Last sync", "[dim]Never[/dim]")
    if last_error:
        table.add_row("Last attempt", f"[dim]{last_error}[/dim]")

    console.print()
    console.print(table)

    if pending and reachable:
        console.print("\n[dim]→ Run [bold]tasksync sync[/bold] to push pending tasks[/dim]")
