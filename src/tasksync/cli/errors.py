"""
Standardized error handling and exit codes for the tasksync CLI.

Only two failures are user-visible by design: "could not save locally"
and "not signed in" (plus unknown task ids). Sync trouble is reported as
pending work by `tasksync sync status`, never as an error.
"""

from enum import IntEnum

from rich.console import Console

from tasksync.core.errors import NotFound, StorageFault, TaskSyncError, Unauthenticated

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for tasksync CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error (including local storage failure)."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Example:
        >>> print_error(
        ...     "Not signed in",
        ...     solution="export TASKSYNC_USER=alice",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_not_signed_in_error() -> None:
    print_error(
        "Not signed in",
        reason="Tasks are stored per user and no user id is configured",
        solution="export TASKSYNC_USER=<your id>  # or set user_id in .tasksync.json",
    )


def print_storage_error(error: StorageFault) -> None:
    print_error(
        "Could not save locally",
        reason=str(error),
        solution="check that the database path is writable (TASKSYNC_DB)",
    )


def print_not_found_error(error: NotFound) -> None:
    print_error(
        f"No task with id {error.task_id}",
        solution="tasksync task list",
    )


def exit_code_for(error: TaskSyncError) -> ExitCode:
    """Print the message for ``error`` and return the exit code to use."""
    if isinstance(error, Unauthenticated):
        print_not_signed_in_error()
        return ExitCode.USER_ERROR
    if isinstance(error, NotFound):
        print_not_found_error(error)
        return ExitCode.USER_ERROR
    if isinstance(error, StorageFault):
        print_storage_error(error)
        return ExitCode.GENERAL_ERROR
    print_error(str(error))
    return ExitCode.GENERAL_ERROR
