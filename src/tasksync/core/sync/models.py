"""
Data models for the sync engine.

Defines the coordinator's pass state token, the result of a reconciliation
pass, and the two-part outcome of a mutation (local result plus remote
result).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from tasksync.core.tasks.models import Task


class PassState(str, Enum):
    """State token owned by a SyncCoordinator."""

    IDLE = "idle"
    RUNNING = "running"


class RemoteOutcome(str, Enum):
    """What happened to the remote side of a mutation."""

    PUSHED = "pushed"
    SKIPPED_OFFLINE = "skipped_offline"
    FAILED = "failed"
    SCHEDULED = "scheduled"


class MutationOutcome(BaseModel):
    """
    Local and remote results of a single mutation, reported separately.

    ``task`` is the final local record (None for deletes). Callers of the
    engine only ever see ``task``; ``remote`` and ``error`` are for logging
    and tests.
    """

    task_id: str
    task: Task | None = None
    remote: RemoteOutcome
    error: str | None = Field(default=None, description="Absorbed remote fault, if any")

    @property
    def synced(self) -> bool:
        return self.remote == RemoteOutcome.PUSHED


class SyncPassResult(BaseModel):
    """
    Result of one reconciliation pass.

    Example:
        >>> result = SyncPassResult(converged=2, failed=1, pending=1)
        >>> result.summary()
        'sync pass: 2 converged, 1 failed, 1 pending'
    """

    converged: int = Field(default=0, ge=0, description="Records confirmed remotely")
    failed: int = Field(default=0, ge=0, description="Records left dirty after a fault")
    pending: int = Field(default=0, ge=0, description="Dirty records after the pass")
    failed_ids: list[str] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def attempted(self) -> int:
        return self.converged + self.failed

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        return (
            f"sync pass: {self.converged} converged, {self.failed} failed, "
            f"{self.pending} pending"
        )
