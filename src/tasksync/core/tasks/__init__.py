"""
Task records and their local persistence.

Example:
    >>> from tasksync.core.tasks import LocalTaskStore, Task
    >>> store = LocalTaskStore(":memory:")
"""

from tasksync.core.tasks.listing import TaskFilter, TaskSort, filter_tasks, sort_tasks
from tasksync.core.tasks.models import (
    Task,
    TaskPriority,
    TaskUpdate,
    generate_task_id,
    utc_now,
)
from tasksync.core.tasks.store import LocalTaskStore, StoredSyncState, get_default_db_path

__all__ = [
    "LocalTaskStore",
    "StoredSyncState",
    "Task",
    "TaskFilter",
    "TaskPriority",
    "TaskSort",
    "TaskUpdate",
    "filter_tasks",
    "generate_task_id",
    "get_default_db_path",
    "sort_tasks",
    "utc_now",
]
