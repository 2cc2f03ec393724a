"""
tasksync - offline-first task tracking

Tasks are written to a local SQLite store first and converge with a
remote document store whenever it is reachable.
"""

__version__ = "0.4.0-dev"

# Re-export core models for convenience
from tasksync.core.config.models import TaskSyncConfig
from tasksync.core.tasks.models import Task, TaskPriority, TaskUpdate

__all__ = ["Task", "TaskPriority", "TaskSyncConfig", "TaskUpdate", "__version__"]
