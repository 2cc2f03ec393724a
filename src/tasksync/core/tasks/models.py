"""
Task data models for tasksync.

Defines the Task record, the partial-update payload used by the mutation
pipeline, and the priority enum. Records are validated pydantic models so
rows read from SQLite and documents written by other clients go through
the same checks.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ID_ALPHABET = string.digits + string.ascii_lowercase

# Smallest updated_at increment; the store matches versions on updated_at
VERSION_STEP = timedelta(microseconds=1)


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_task_id() -> str:
    """
    Generate a new task id.

    Millisecond timestamp followed by nine random base36 characters, so ids
    sort roughly by creation time and collisions across devices are
    vanishingly unlikely.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}{suffix}"


class TaskPriority(str, Enum):
    """Task priority levels, lowest to highest."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Numeric rank for sorting (higher = more important)."""
        return {"low": 1, "medium": 2, "high": 3}[self.value]

    @property
    def label(self) -> str:
        return self.value.capitalize()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Task(BaseModel):
    """
    A task record.

    ``dirty`` means the local copy has not been confirmed to match the
    remote store. It is local bookkeeping only and is never part of the
    remote document.

    Example:
        >>> task = Task(
        ...     id="1700000000000abcdefghi",
        ...     owner_id="user-1",
        ...     title="Buy milk",
        ...     created_at=utc_now(),
        ...     updated_at=utc_now(),
        ... )
        >>> task.dirty
        True
    """

    id: str = Field(..., min_length=1, description="Globally unique task identifier")
    owner_id: str = Field(..., min_length=1, alias="ownerId", description="Owning user id")
    title: str = Field(default="", description="Task title")
    description: str = Field(default="", description="Free-text description")
    completed: bool = Field(default=False)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: datetime | None = Field(default=None, alias="dueDate")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    dirty: bool = Field(
        default=True,
        description="True until a remote write of this exact version succeeds",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        """Store every timestamp as aware UTC."""
        return _as_utc(v)

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> Any:
        return "" if v is None else v

    def to_remote_document(self) -> dict[str, Any]:
        """JSON-ready document for the remote store (camelCase, no dirty flag)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"dirty"})


class TaskUpdate(BaseModel):
    """
    Partial field update for an existing task.

    Only fields that were explicitly set are merged. ``due_date=None`` set
    explicitly clears the due date; leaving it unset keeps the current one.
    """

    title: str | None = None
    description: str | None = None
    completed: bool | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = Field(default=None, alias="dueDate")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the caller."""
        changes = self.model_dump(exclude_unset=True)
        # None only clears fields that allow it
        return {k: v for k, v in changes.items() if v is not None or k == "due_date"}

    def apply(self, task: Task, *, now: datetime) -> Task:
        """
        Return a copy of ``task`` with these changes merged in.

        ``updated_at`` is strictly later than ``task.updated_at``, even if
        the wall clock stepped back or did not tick, so every version of a
        record has its own stamp. The result is always dirty.
        """
        stamped = max(_as_utc(now) or now, task.updated_at + VERSION_STEP)
        merged = task.model_dump()
        merged.update(self.changes())
        merged["updated_at"] = stamped
        merged["dirty"] = True
        return Task.model_validate(merged)
