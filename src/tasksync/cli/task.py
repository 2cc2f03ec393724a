"""
tasksync CLI - task commands.

Every command writes to the local store first; with a reachable remote the
change is also pushed right away, otherwise it waits for `tasksync sync`.
"""

from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from tasksync.cli.engine import open_engine
from tasksync.core.tasks.listing import TaskFilter, TaskSort
from tasksync.core.tasks.models import Task, TaskPriority, TaskUpdate

console = Console()
app = typer.Typer(
    name="task",
    help="Create, list and edit tasks",
    no_args_is_help=True,
)

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]

PRIORITY_STYLES = {
    TaskPriority.HIGH: "red",
    TaskPriority.MEDIUM: "yellow",
    TaskPriority.LOW: "green",
}


def _sync_marker(task: Task) -> str:
    return "[yellow]pending[/yellow]" if task.dirty else "[green]synced[/green]"


def _print_task(task: Task) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("ID", task.id)
    table.add_row("Title", task.title)
    if task.description:
        table.add_row("Description", task.description)
    table.add_row("Completed", "yes" if task.completed else "no")
    style = PRIORITY_STYLES[task.priority]
    table.add_row("Priority", f"[{style}]{task.priority.label}[/{style}]")
    if task.due_date:
        table.add_row("Due", task.due_date.strftime("%Y-%m-%d %H:%M"))
    table.add_row("Updated", task.updated_at.strftime("%Y-%m-%d %H:%M:%S"))
    table.add_row("Sync", _sync_marker(task))
    console.print(table)


@app.command()
def add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title"),
    description: str = typer.Option("", "--description", "-d", help="Longer description"),
    priority: TaskPriority = typer.Option(
        TaskPriority.MEDIUM, "--priority", "-p", help="Task priority"
    ),
    due: datetime | None = typer.Option(None, "--due", formats=DATE_FORMATS, help="Due date"),
) -> None:
    """
    Add a task.

    Examples:
        tasksync task add "Buy milk"
        tasksync task add "Ship release" -p high --due 2026-11-01
    """
    if not title.strip():
        console.print("[red]Title cannot be empty[/red]")
        raise typer.Exit(2)

    with open_engine(ctx) as engine:
        task = engine.add(
            title=title.strip(),
            description=description,
            priority=priority,
            due_date=due,
        )
        console.print(f"[green]✓[/green] Added {task.id} ({_sync_marker(task)})")


@app.command(name="list")
def list_tasks(
    ctx: typer.Context,
    status: TaskFilter = typer.Option(TaskFilter.ALL, "--status", "-s", help="Filter"),
    sort: TaskSort = typer.Option(TaskSort.CREATED_AT, "--sort", help="Sort order"),
) -> None:
    """
    List tasks for the current user.

    Examples:
        tasksync task list
        tasksync task list --status pending --sort priority
    """
    with open_engine(ctx) as engine:
        tasks = engine.list_tasks(status, sort)

    if not tasks:
        console.print("[dim]No tasks[/dim]")
        return

    table = Table(title=f"Tasks ({len(tasks)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("", width=1)
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Due")
    table.add_column("Sync")
    for task in tasks:
        style = PRIORITY_STYLES[task.priority]
        table.add_row(
            task.id,
            "✓" if task.completed else "",
            task.title,
            f"[{style}]{task.priority.label}[/{style}]",
            task.due_date.strftime("%Y-%m-%d") if task.due_date else "",
            _sync_marker(task),
        )
    console.print(table)


@app.command()
def show(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID")) -> None:
    """Show one task."""
    with open_engine(ctx) as engine:
        task = engine.get_task(task_id)
    _print_task(task)


@app.command()
def update(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    title: str | None = typer.Option(None, "--title", "-t", help="New title"),
    description: str | None = typer.Option(None, "--description", "-d"),
    priority: TaskPriority | None = typer.Option(None, "--priority", "-p"),
    due: datetime | None = typer.Option(None, "--due", formats=DATE_FORMATS),
    clear_due: bool = typer.Option(False, "--clear-due", help="Remove the due date"),
) -> None:
    """
    Change fields of a task; fields not given stay as they are.

    Examples:
        tasksync task update 1700000000000abcdefghi --title "Buy oat milk"
        tasksync task update 1700000000000abcdefghi --clear-due
    """
    fields: dict[str, object] = {}
    if title is not None:
        if not title.strip():
            console.print("[red]Title cannot be empty[/red]")
            raise typer.Exit(2)
        fields["title"] = title.strip()
    if description is not None:
        fields["description"] = description
    if priority is not None:
        fields["priority"] = priority
    if clear_due:
        fields["due_date"] = None
    elif due is not None:
        fields["due_date"] = due

    if not fields:
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(0)

    with open_engine(ctx) as engine:
        task = engine.update(task_id, TaskUpdate(**fields))
        console.print(f"[green]✓[/green] Updated {task.id} ({_sync_marker(task)})")


@app.command()
def done(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID")) -> None:
    """Toggle a task between completed and not completed."""
    with open_engine(ctx) as engine:
        task = engine.toggle_completed(task_id)
        state = "completed" if task.completed else "reopened"
        console.print(f"[green]✓[/green] {task.id} {state} ({_sync_marker(task)})")


@app.command()
def delete(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID")) -> None:
    """Delete a task."""
    with open_engine(ctx) as engine:
        engine.delete(task_id)
        console.print(f"[green]✓[/green] Deleted {task_id}")
