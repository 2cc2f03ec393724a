"""Filtering and ordering helpers for presenting task lists."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum

from tasksync.core.tasks.models import Task


class TaskFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"


class TaskSort(str, Enum):
    CREATED_AT = "created_at"
    DUE_DATE = "due_date"
    PRIORITY = "priority"


def filter_tasks(tasks: Iterable[Task], task_filter: TaskFilter = TaskFilter.ALL) -> list[Task]:
    """Keep pending (not completed) or completed tasks; ALL keeps everything."""
    if task_filter == TaskFilter.PENDING:
        return [t for t in tasks if not t.completed]
    if task_filter == TaskFilter.COMPLETED:
        return [t for t in tasks if t.completed]
    return list(tasks)


def sort_tasks(tasks: Iterable[Task], sort_by: TaskSort = TaskSort.CREATED_AT) -> list[Task]:
    """
    Return a new, stably sorted list.

    - CREATED_AT: newest first
    - DUE_DATE: soonest first, tasks without a due date last
    - PRIORITY: high before medium before low
    """
    items = list(tasks)
    if sort_by == TaskSort.CREATED_AT:
        return sorted(items, key=lambda t: t.created_at, reverse=True)
    if sort_by == TaskSort.DUE_DATE:
        far_future = datetime.max.replace(tzinfo=timezone.utc)
        return sorted(
            items,
            key=lambda t: (t.due_date is None, t.due_date or far_future),
        )
    if sort_by == TaskSort.PRIORITY:
        return sorted(items, key=lambda t: t.priority.rank, reverse=True)
    return items
