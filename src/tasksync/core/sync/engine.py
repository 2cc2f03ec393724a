"""
SyncEngine: the caller-facing surface of the offline-first core.

Wires the identity provider, connectivity signal, local store, remote
adapter, mutation pipeline and sync coordinator together. Callers (CLI,
UI) only ever see local results: a Task, a pass result, a count or a
timestamp. Remote failures never escape; they show up as pending work.

When ``auto_sync_on_reconnect`` is on, every unreachable -> reachable
transition of the connectivity signal starts a pass in the background.

Example:
    >>> engine = SyncEngine(
    ...     store=LocalTaskStore(":memory:"),
    ...     remote=DirectoryRemoteAdapter("/tmp/remote"),
    ...     connectivity=ConnectivitySignal(reachable=False),
    ...     identity=StaticIdentity("user-1"),
    ... )
    >>> task = engine.add(title="Write report")
    >>> engine.get_pending_sync_count()
    1
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import Any

from tasksync.core.config.models import TaskSyncConfig
from tasksync.core.connectivity import ConnectivitySignal
from tasksync.core.errors import NotFound, Offline, StorageFault, Unauthenticated
from tasksync.core.identity import IdentityProvider, StaticIdentity
from tasksync.core.remote import get_adapter
from tasksync.core.remote.adapter import RemoteRecordAdapter
from tasksync.core.sync.coordinator import SyncCoordinator
from tasksync.core.sync.models import SyncPassResult
from tasksync.core.sync.pipeline import MutationPipeline
from tasksync.core.tasks.listing import TaskFilter, TaskSort, filter_tasks, sort_tasks
from tasksync.core.tasks.models import Task, TaskPriority, TaskUpdate, utc_now
from tasksync.core.tasks.store import LocalTaskStore
from tasksync.utils.logging import SyncEventLogger

logger = logging.getLogger(__name__)


class SyncEngine:
    """Offline-first task engine for one process."""

    def __init__(
        self,
        store: LocalTaskStore,
        remote: RemoteRecordAdapter,
        connectivity: ConnectivitySignal,
        identity: IdentityProvider,
        *,
        journal: SyncEventLogger | None = None,
        auto_sync_on_reconnect: bool = True,
        record_attempts: int = 1,
        retry_base_delay: float = 0.5,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.remote = remote
        self.connectivity = connectivity
        self.identity = identity
        self.pipeline = MutationPipeline(store, remote, connectivity, journal=journal, clock=clock)
        self.coordinator = SyncCoordinator(
            store,
            remote,
            connectivity,
            identity,
            journal=journal,
            record_attempts=record_attempts,
            retry_base_delay=retry_base_delay,
            clock=clock,
        )
        self._sync_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tasksync-sync")
        self._background_lock = threading.Lock()
        self._background_syncs: set[Future[SyncPassResult | None]] = set()
        self._unsubscribe: Callable[[], None] | None = None
        if auto_sync_on_reconnect:
            self._unsubscribe = connectivity.subscribe(self._on_connectivity_change)

    @classmethod
    def from_config(
        cls,
        config: TaskSyncConfig,
        *,
        identity: IdentityProvider | None = None,
        connectivity: ConnectivitySignal | None = None,
    ) -> SyncEngine:
        """
        Build an engine from loaded configuration.

        Without an explicit connectivity signal, the remote counts as
        reachable exactly when one is configured.
        """
        db_path = Path(config.store.path).expanduser() if config.store.path else None
        store = LocalTaskStore(db_path)

        options: dict[str, Any] = {}
        if config.remote.kind == "http":
            options = {
                "base_url": config.remote.base_url,
                "collection": config.remote.collection,
                "token": config.remote.token,
                "timeout": config.remote.timeout_seconds,
            }
        elif config.remote.kind == "directory":
            options = {"directory": config.remote.directory}
        remote = get_adapter(config.remote.kind, **options)

        if identity is None:
            identity = StaticIdentity(config.user_id)
        if connectivity is None:
            connectivity = ConnectivitySignal(reachable=config.remote_configured)

        journal = None
        user_id = identity.current_user_id()
        if config.sync.journal and user_id:
            journal = SyncEventLogger.init(user_id)

        return cls(
            store,
            remote,
            connectivity,
            identity,
            journal=journal,
            auto_sync_on_reconnect=config.sync.auto_sync_on_reconnect,
            record_attempts=config.sync.record_attempts,
            retry_base_delay=config.sync.retry_base_delay,
        )

    # ---- mutations ----

    def add(
        self,
        *,
        title: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        completed: bool = False,
    ) -> Task:
        """Create a task for the current user and return the local record."""
        outcome = self.pipeline.add(
            self.identity.current_user_id(),
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            completed=completed,
        )
        assert outcome.task is not None
        return outcome.task

    def update(self, task_id: str, changes: TaskUpdate | None = None, **fields: Any) -> Task:
        """
        Merge field changes into a task.

        Accepts a TaskUpdate or the same fields as keyword arguments.
        """
        if changes is None:
            changes = TaskUpdate(**fields)
        elif fields:
            raise TypeError("Pass either a TaskUpdate or keyword fields, not both")
        outcome = self.pipeline.update(self.identity.current_user_id(), task_id, changes)
        assert outcome.task is not None
        return outcome.task

    def toggle_completed(self, task_id: str) -> Task:
        outcome = self.pipeline.toggle_completed(self.identity.current_user_id(), task_id)
        assert outcome.task is not None
        return outcome.task

    def delete(self, task_id: str) -> None:
        """Remove a task locally; any remote delete happens in the background."""
        self.pipeline.delete(self.identity.current_user_id(), task_id)

    # ---- reads ----

    def get_task(self, task_id: str) -> Task:
        """
        Raises:
            Unauthenticated: If nobody is signed in.
            NotFound: If the current user has no such task.
        """
        owner_id = self._require_user()
        task = self.store.get_task(task_id, owner_id)
        if task is None:
            raise NotFound(task_id)
        return task

    def list_tasks(
        self,
        task_filter: TaskFilter = TaskFilter.ALL,
        sort_by: TaskSort = TaskSort.CREATED_AT,
    ) -> list[Task]:
        owner_id = self._require_user()
        return sort_tasks(filter_tasks(self.store.get(owner_id), task_filter), sort_by)

    # ---- sync ----

    def run_sync_pass(self) -> SyncPassResult:
        return self.coordinator.run_sync_pass()

    def get_pending_sync_count(self) -> int:
        return self.coordinator.get_pending_sync_count()

    def get_last_pass_timestamp(self) -> datetime | None:
        return self.coordinator.get_last_pass_timestamp()

    def get_last_error(self) -> str | None:
        return self.coordinator.get_last_error()

    def clear_last_error(self) -> None:
        self.coordinator.clear_last_error()

    @property
    def is_syncing(self) -> bool:
        return self.coordinator.is_running

    def _on_connectivity_change(self, reachable: bool) -> None:
        if not reachable:
            return
        logger.info("Connectivity regained; starting background sync pass")
        future = self._sync_executor.submit(self._run_background_pass)
        with self._background_lock:
            self._background_syncs.add(future)
        future.add_done_callback(self._forget_background)

    def _forget_background(self, future: Future[SyncPassResult | None]) -> None:
        with self._background_lock:
            self._background_syncs.discard(future)

    def _run_background_pass(self) -> SyncPassResult | None:
        try:
            return self.coordinator.run_sync_pass()
        except (Offline, Unauthenticated) as e:
            logger.info("Background sync pass skipped: %s", e)
        except StorageFault:
            logger.exception("Background sync pass failed on local storage")
        except Exception:
            logger.exception("Background sync pass failed")
        return None

    def wait_for_background(self, timeout: float | None = None) -> None:
        """Wait for background syncs and detached remote deletes to finish."""
        with self._background_lock:
            pending = list(self._background_syncs)
        wait(pending, timeout=timeout)
        self.pipeline.wait_for_background(timeout=timeout)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._sync_executor.shutdown(wait=True)
        self.pipeline.close()
        close_remote = getattr(self.remote, "close", None)
        if callable(close_remote):
            close_remote()
        self.store.close()

    def __enter__(self) -> SyncEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_user(self) -> str:
        owner_id = self.identity.current_user_id()
        if not owner_id:
            raise Unauthenticated()
        return owner_id
