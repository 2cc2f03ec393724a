"""
Exception hierarchy for the tasksync engine.

Exception Hierarchy:
    TaskSyncError (base)
    ├── Unauthenticated (no current user)
    ├── Offline (remote unreachable when a sync pass starts)
    ├── StorageFault (local persistence failed)
    ├── RemoteWriteFault (a single remote put/delete failed)
    └── NotFound (unknown task id)

Only Unauthenticated, StorageFault and NotFound ever reach an interactive
caller. RemoteWriteFault is absorbed by the mutation pipeline and the sync
coordinator and shows up as pending work instead.

Example:
    >>> from tasksync.core.errors import RemoteWriteFault
    >>> try:
    ...     raise RemoteWriteFault("timeout", task_id="abc", status_code=None)
    ... except RemoteWriteFault as e:
    ...     print(e.task_id, e.context)
"""


class TaskSyncError(Exception):
    """
    Base exception for all tasksync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class Unauthenticated(TaskSyncError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class Offline(TaskSyncError):
    """Raised when a sync pass is requested while the remote is unreachable."""

    def __init__(self, message: str = "No internet connection") -> None:
        super().__init__(message)


class StorageFault(TaskSyncError):
    """
    Raised when the local record store cannot read or write.

    Local durability could not be guaranteed, so this always propagates to
    the caller. The underlying sqlite3/OS error is chained as __cause__.
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message, **context)


class RemoteWriteFault(TaskSyncError):
    """
    Raised by a remote adapter when a single put or delete fails.

    Attributes:
        task_id: ID of the record the call was about
        status_code: HTTP status code, if the failure came from a response
    """

    def __init__(
        self,
        message: str,
        *,
        task_id: str | None = None,
        status_code: int | None = None,
        **context: object,
    ) -> None:
        super().__init__(message, task_id=task_id, status_code=status_code, **context)
        self.task_id = task_id
        self.status_code = status_code


class NotFound(TaskSyncError):
    """Raised when an update or delete references an unknown task id."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}", task_id=task_id)
        self.task_id = task_id
