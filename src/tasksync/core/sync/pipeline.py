"""
Mutation pipeline: write local first, then push opportunistically.

Every mutation is made durable in the local store before the remote store
is touched. The remote write is best-effort: if it fails or the remote is
unreachable, the record simply stays dirty and the sync coordinator picks
it up on its next pass. Only local failures (StorageFault) and caller
mistakes (Unauthenticated, NotFound) are raised.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime

from tasksync.core.connectivity import ConnectivitySignal
from tasksync.core.errors import NotFound, RemoteWriteFault, Unauthenticated
from tasksync.core.remote.adapter import RemoteRecordAdapter
from tasksync.core.sync.models import MutationOutcome, RemoteOutcome
from tasksync.core.tasks.models import (
    Task,
    TaskPriority,
    TaskUpdate,
    generate_task_id,
    utc_now,
)
from tasksync.core.tasks.store import LocalTaskStore
from tasksync.utils.logging import EventType, SyncEventLogger

logger = logging.getLogger(__name__)


class MutationPipeline:
    """
    Create/update/delete entry points.

    Example:
        >>> pipeline = MutationPipeline(store, remote, signal)
        >>> outcome = pipeline.add("user-1", title="Buy milk")
        >>> outcome.task.dirty  # True while offline
        True
    """

    def __init__(
        self,
        store: LocalTaskStore,
        remote: RemoteRecordAdapter,
        connectivity: ConnectivitySignal,
        *,
        journal: SyncEventLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
        background_workers: int = 2,
    ) -> None:
        """
        Args:
            store: Local record store (source of truth)
            remote: Remote record adapter
            connectivity: Reachability signal consulted before remote calls
            journal: Optional JSONL journal for absorbed remote faults
            clock: Source of "now" for timestamps
            background_workers: Threads used for detached remote deletes
        """
        self._store = store
        self._remote = remote
        self._connectivity = connectivity
        self._journal = journal
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=background_workers, thread_name_prefix="tasksync-delete"
        )
        self._pending_lock = threading.Lock()
        self._pending: set[Future[MutationOutcome]] = set()

    # ---- public API ----

    def add(
        self,
        owner_id: str | None,
        *,
        title: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        completed: bool = False,
    ) -> MutationOutcome:
        """
        Create a task owned by ``owner_id``.

        Raises:
            Unauthenticated: If owner_id is empty.
            StorageFault: If the local write fails.
        """
        if not owner_id:
            raise Unauthenticated()

        now = self._clock()
        task = Task(
            id=generate_task_id(),
            owner_id=owner_id,
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            completed=completed,
            created_at=now,
            updated_at=now,
            dirty=True,
        )
        self._store.upsert(task)
        logger.info("Task added id=%s owner=%s", task.id, owner_id)
        return self._push(task)

    def update(self, owner_id: str | None, task_id: str, changes: TaskUpdate) -> MutationOutcome:
        """
        Merge ``changes`` onto an existing task.

        Fields not set in ``changes`` are unchanged. ``updated_at`` is
        stamped later than the stored version and the record becomes dirty
        before any remote attempt.

        Raises:
            Unauthenticated: If owner_id is empty.
            NotFound: If the task does not exist for this owner.
            StorageFault: If the local read or write fails.
        """
        if not owner_id:
            raise Unauthenticated()

        current = self._store.get_task(task_id, owner_id)
        if current is None:
            raise NotFound(task_id)

        updated = changes.apply(current, now=self._clock())
        self._store.upsert(updated)
        logger.info("Task updated id=%s fields=%s", task_id, sorted(changes.changes()))
        return self._push(updated)

    def toggle_completed(self, owner_id: str | None, task_id: str) -> MutationOutcome:
        """Flip ``completed``; same guarantees as update()."""
        if not owner_id:
            raise Unauthenticated()

        current = self._store.get_task(task_id, owner_id)
        if current is None:
            raise NotFound(task_id)
        return self.update(owner_id, task_id, TaskUpdate(completed=not current.completed))

    def delete(self, owner_id: str | None, task_id: str) -> MutationOutcome:
        """
        Remove a task locally, then schedule a detached remote delete.

        Returns as soon as the local removal is durable. A failed remote
        delete is logged and never brings the local record back.

        Raises:
            Unauthenticated: If owner_id is empty.
            NotFound: If the task does not exist for this owner.
            StorageFault: If the local removal fails.
        """
        if not owner_id:
            raise Unauthenticated()

        if not self._store.remove(task_id, owner_id):
            raise NotFound(task_id)
        logger.info("Task deleted locally id=%s", task_id)

        if not self._connectivity.is_reachable():
            return MutationOutcome(task_id=task_id, remote=RemoteOutcome.SKIPPED_OFFLINE)

        future = self._executor.submit(self._remote_delete, task_id)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return MutationOutcome(task_id=task_id, remote=RemoteOutcome.SCHEDULED)

    def wait_for_background(self, timeout: float | None = None) -> list[MutationOutcome]:
        """
        Block until scheduled remote deletes finish.

        Returns:
            Outcomes of the deletes that completed within ``timeout``.
        """
        with self._pending_lock:
            pending = list(self._pending)
        done, _ = wait(pending, timeout=timeout)
        return [f.result() for f in done]

    def close(self, wait_for_deletes: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_deletes)

    # ---- internals ----

    def _forget(self, future: Future[MutationOutcome]) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _push(self, task: Task) -> MutationOutcome:
        """Best-effort remote put for a freshly written local record."""
        if not self._connectivity.is_reachable():
            logger.debug("Offline; task %s left dirty", task.id)
            return MutationOutcome(
                task_id=task.id, task=task, remote=RemoteOutcome.SKIPPED_OFFLINE
            )

        try:
            self._remote.put(task)
        except RemoteWriteFault as e:
            logger.warning("Failed to push task %s, will retry on next sync: %s", task.id, e)
            if self._journal is not None:
                self._journal.log_event(
                    EventType.REMOTE_WRITE_FAILED,
                    {"task_id": task.id, "error": str(e), "status_code": e.status_code},
                )
            return MutationOutcome(
                task_id=task.id, task=task, remote=RemoteOutcome.FAILED, error=str(e)
            )

        if self._store.mark_synced(task):
            final = task.model_copy(update={"dirty": False})
        else:
            # Changed or deleted locally while the put was in flight
            final = self._store.get_task(task.id, task.owner_id) or task
        return MutationOutcome(task_id=task.id, task=final, remote=RemoteOutcome.PUSHED)

    def _remote_delete(self, task_id: str) -> MutationOutcome:
        try:
            self._remote.delete(task_id)
        except RemoteWriteFault as e:
            logger.warning("Remote delete of task %s failed: %s", task_id, e)
            if self._journal is not None:
                self._journal.log_event(
                    EventType.REMOTE_DELETE_FAILED,
                    {"task_id": task_id, "error": str(e), "status_code": e.status_code},
                )
            return MutationOutcome(task_id=task_id, remote=RemoteOutcome.FAILED, error=str(e))
        logger.debug("Remote delete done id=%s", task_id)
        return MutationOutcome(task_id=task_id, remote=RemoteOutcome.PUSHED)
