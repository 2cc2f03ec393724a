"""
Pytest configuration and shared fixtures.

Provides an in-memory local store, a scriptable fake remote store, a
connectivity signal, identity, and ready-wired pipeline/coordinator/engine
objects. No test touches the network.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tasksync.core.config import clear_cache
from tasksync.core.connectivity import ConnectivitySignal
from tasksync.core.errors import RemoteWriteFault
from tasksync.core.identity import StaticIdentity
from tasksync.core.sync import MutationPipeline, SyncCoordinator, SyncEngine
from tasksync.core.tasks.models import Task
from tasksync.core.tasks.store import LocalTaskStore

# ==============================================================================
# Fakes
# ==============================================================================


class FakeRemote:
    """
    In-memory remote document store with failure injection.

    Attributes:
        documents: Current remote documents keyed by task id
        put_calls: Task ids in the order put() was called
        delete_calls: Task ids in the order delete() was called
        fail_ids: Task ids whose put/delete raise RemoteWriteFault
        fail_all: Make every call raise RemoteWriteFault
        fail_times: Per-id number of upcoming calls that fail before succeeding
        block: If set, put() waits on this event before writing
    """

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, object]] = {}
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.fail_ids: set[str] = set()
        self.fail_all = False
        self.fail_times: dict[str, int] = {}
        self.block: threading.Event | None = None
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def _maybe_fail(self, task_id: str) -> None:
        if self.fail_all or task_id in self.fail_ids:
            raise RemoteWriteFault("simulated remote failure", task_id=task_id, status_code=503)
        remaining = self.fail_times.get(task_id, 0)
        if remaining > 0:
            self.fail_times[task_id] = remaining - 1
            raise RemoteWriteFault("simulated transient failure", task_id=task_id)

    def put(self, task: Task) -> None:
        with self._lock:
            self.put_calls.append(task.id)
        self.entered.set()
        if self.block is not None:
            self.block.wait(timeout=5)
        with self._lock:
            self._maybe_fail(task.id)
            self.documents[task.id] = task.to_remote_document()

    def delete(self, task_id: str) -> None:
        with self._lock:
            self.delete_calls.append(task_id)
            self._maybe_fail(task_id)
            self.documents.pop(task_id, None)


class SteppingClock:
    """Deterministic clock that advances ``step`` (one second) per call."""

    def __init__(self, start: datetime | None = None, step: timedelta | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        self.step = timedelta(seconds=1) if step is None else step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


# ==============================================================================
# Component Fixtures
# ==============================================================================


@pytest.fixture
def store() -> Iterator[LocalTaskStore]:
    store = LocalTaskStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def file_store(tmp_path: Path) -> LocalTaskStore:
    return LocalTaskStore(tmp_path / "data" / "tasks.db")


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def signal() -> ConnectivitySignal:
    return ConnectivitySignal(reachable=True)


@pytest.fixture
def identity() -> StaticIdentity:
    return StaticIdentity("user-1")


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def pipeline(
    store: LocalTaskStore, remote: FakeRemote, signal: ConnectivitySignal, clock: SteppingClock
) -> Iterator[MutationPipeline]:
    pipeline = MutationPipeline(store, remote, signal, clock=clock)
    yield pipeline
    pipeline.close()


@pytest.fixture
def coordinator(
    store: LocalTaskStore,
    remote: FakeRemote,
    signal: ConnectivitySignal,
    identity: StaticIdentity,
    clock: SteppingClock,
) -> SyncCoordinator:
    return SyncCoordinator(store, remote, signal, identity, clock=clock, sleep=lambda s: None)


@pytest.fixture
def engine(
    store: LocalTaskStore,
    remote: FakeRemote,
    signal: ConnectivitySignal,
    identity: StaticIdentity,
    clock: SteppingClock,
) -> Iterator[SyncEngine]:
    engine = SyncEngine(store, remote, signal, identity, clock=clock)
    yield engine
    engine.close()


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep config, data and env files of the real user out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    for var in (
        "TASKSYNC_USER",
        "TASKSYNC_DB",
        "TASKSYNC_REMOTE_URL",
        "TASKSYNC_REMOTE_TOKEN",
        "TASKSYNC_REMOTE_DIR",
        "TASKSYNC_RECORD_ATTEMPTS",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_cache()
    yield
    clear_cache()
