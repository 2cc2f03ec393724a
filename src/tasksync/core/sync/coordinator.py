"""
Sync coordinator: single-flight reconciliation passes.

A pass takes a snapshot of the current user's dirty records and pushes
each one to the remote store independently. A record whose push fails
stays dirty and is counted as failed; it never aborts the pass. Records
that become dirty after the snapshot wait for the next pass.

At most one pass runs per coordinator. A second request for the same user
made while a pass is running joins it and gets the same result instead of
enumerating the dirty set again. A request for a different user waits for
the running pass to finish, then runs its own.

Example:
    >>> coordinator = SyncCoordinator(store, remote, signal, identity)
    >>> result = coordinator.run_sync_pass()
    >>> print(result.summary())
    sync pass: 3 converged, 0 failed, 0 pending
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, wait
from datetime import datetime
from typing import NoReturn

from tasksync.core.connectivity import ConnectivitySignal
from tasksync.core.errors import Offline, RemoteWriteFault, TaskSyncError, Unauthenticated
from tasksync.core.identity import IdentityProvider
from tasksync.core.remote.adapter import RemoteRecordAdapter
from tasksync.core.sync.models import PassState, SyncPassResult
from tasksync.core.tasks.models import Task, utc_now
from tasksync.core.tasks.store import LocalTaskStore
from tasksync.utils.logging import EventType, SyncEventLogger

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """
    Drives dirty records to the remote store and reports sync progress.

    Attributes:
        record_attempts: Remote put attempts per record within one pass
        retry_base_delay: Delay in seconds before the second attempt;
            doubles for each further attempt (with +/-20% jitter)
    """

    def __init__(
        self,
        store: LocalTaskStore,
        remote: RemoteRecordAdapter,
        connectivity: ConnectivitySignal,
        identity: IdentityProvider,
        *,
        journal: SyncEventLogger | None = None,
        record_attempts: int = 1,
        retry_base_delay: float = 0.5,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if record_attempts < 1:
            raise ValueError("record_attempts must be >= 1")
        if retry_base_delay < 0:
            raise ValueError("retry_base_delay must be non-negative")

        self._store = store
        self._remote = remote
        self._connectivity = connectivity
        self._identity = identity
        self._journal = journal
        self.record_attempts = record_attempts
        self.retry_base_delay = retry_base_delay
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.Lock()
        self._state = PassState.IDLE
        self._inflight: Future[SyncPassResult] | None = None
        self._inflight_owner: str | None = None
        self._last_error: str | None = None

    # ---- state ----

    @property
    def state(self) -> PassState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state == PassState.RUNNING

    # ---- passes ----

    def run_sync_pass(self) -> SyncPassResult:
        """
        Run one reconciliation pass, or join the one already running.

        Raises:
            Unauthenticated: If nobody is signed in.
            Offline: If the remote is unreachable when the pass is requested.
            StorageFault: If the local store fails mid-pass.
        """
        owner_id = self._identity.current_user_id()
        if not owner_id:
            self._reject(None, Unauthenticated())
        if not self._connectivity.is_reachable():
            self._reject(owner_id, Offline())

        inflight, leader = self._claim(owner_id)
        if not leader:
            logger.info("Sync pass already running; waiting for its result")
            return inflight.result()

        try:
            result = self._run_pass(owner_id)
        except BaseException as e:
            self._release()
            inflight.set_exception(e)
            raise
        self._release()
        inflight.set_result(result)
        return result

    def _release(self) -> None:
        # Cleared before the future resolves so woken waiters can claim
        with self._lock:
            self._state = PassState.IDLE
            self._inflight = None
            self._inflight_owner = None

    def _claim(self, owner_id: str) -> tuple[Future[SyncPassResult], bool]:
        """
        Become the running pass, or find the running pass for ``owner_id``.

        A pass running for another user is never joined; the caller waits
        for it to finish and then runs its own.

        Returns:
            The pass future and whether the caller must run it.
        """
        while True:
            with self._lock:
                running = self._inflight
                if running is None:
                    inflight: Future[SyncPassResult] = Future()
                    self._inflight = inflight
                    self._inflight_owner = owner_id
                    self._state = PassState.RUNNING
                    return inflight, True
                if self._inflight_owner == owner_id:
                    return running, False
            logger.info("Sync pass for another user running; waiting to start")
            wait([running])

    def _reject(self, owner_id: str | None, error: TaskSyncError) -> NoReturn:
        """Record why a pass could not start, then raise."""
        logger.info("Sync pass rejected: %s", error)
        self._last_error = error.message
        if owner_id is not None:
            state = self._store.get_sync_state(owner_id)
            state.last_error = error.message
            self._store.save_sync_state(state)
        if self._journal is not None:
            self._journal.log_event(EventType.PASS_REJECTED, {"reason": error.message})
        raise error

    def _run_pass(self, owner_id: str) -> SyncPassResult:
        started_at = self._clock()
        working_set = self._store.get_dirty(owner_id)
        logger.info("Sync pass started owner=%s dirty=%d", owner_id, len(working_set))
        if self._journal is not None:
            self._journal.log_event(EventType.PASS_START, {"dirty": len(working_set)})

        result = SyncPassResult(started_at=started_at)
        for task in working_set:
            error = self._push(task)
            if error is None:
                if not self._store.mark_synced(task):
                    logger.debug("Task %s changed during pass; stays dirty", task.id)
                result.converged += 1
            else:
                result.failed += 1
                result.failed_ids.append(task.id)
                if self._journal is not None:
                    self._journal.log_event(
                        EventType.RECORD_FAILED, {"task_id": task.id, "error": error}
                    )

        result.completed_at = self._clock()
        result.pending = self._store.count_dirty(owner_id)

        state = self._store.get_sync_state(owner_id)
        state.last_pass_at = result.completed_at
        state.last_error = None
        self._store.save_sync_state(state)
        self._last_error = None

        logger.info(result.summary())
        if self._journal is not None:
            self._journal.log_event(
                EventType.PASS_END,
                {
                    "converged": result.converged,
                    "failed": result.failed,
                    "pending": result.pending,
                    "duration_seconds": result.duration_seconds,
                },
            )
        return result

    def _push(self, task: Task) -> str | None:
        """
        Put one record, retrying up to record_attempts times.

        Returns:
            None on success, otherwise the last fault message.
        """
        last_error = ""
        for attempt in range(self.record_attempts):
            try:
                self._remote.put(task)
                logger.debug("Task %s converged (attempt %d)", task.id, attempt + 1)
                return None
            except RemoteWriteFault as e:
                last_error = str(e)
                logger.warning(
                    "Push of task %s failed (attempt %d/%d): %s",
                    task.id,
                    attempt + 1,
                    self.record_attempts,
                    e,
                )
            if attempt < self.record_attempts - 1:
                self._sleep(self._retry_delay(attempt))
        return last_error

    def _retry_delay(self, attempt: int) -> float:
        delay = self.retry_base_delay * (2.0**attempt)
        variance = delay * 0.2
        return max(0.0, delay + random.uniform(-variance, variance))

    # ---- observability ----

    def get_pending_sync_count(self) -> int:
        """
        Number of dirty records for the current user, read fresh.

        May race with a pass in flight; 0 when nobody is signed in.
        """
        owner_id = self._identity.current_user_id()
        if not owner_id:
            return 0
        return self._store.count_dirty(owner_id)

    def get_last_pass_timestamp(self) -> datetime | None:
        """Completion time of the last pass that got past its preconditions."""
        owner_id = self._identity.current_user_id()
        if not owner_id:
            return None
        return self._store.get_sync_state(owner_id).last_pass_at

    def get_last_error(self) -> str | None:
        """Why the most recent pass request was rejected, if it was."""
        owner_id = self._identity.current_user_id()
        if not owner_id:
            return self._last_error
        return self._store.get_sync_state(owner_id).last_error

    def clear_last_error(self) -> None:
        self._last_error = None
        owner_id = self._identity.current_user_id()
        if owner_id:
            state = self._store.get_sync_state(owner_id)
            state.last_error = None
            self._store.save_sync_state(state)
