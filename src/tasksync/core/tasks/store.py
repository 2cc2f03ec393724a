"""
SQLite-backed local record store.

The store is the durable source of truth on the device. Every write is a
single transaction, so a concurrent reader sees either the old row or the
new row and never a mix of the two. Rows are scoped by owner; the
``(owner_id, dirty)`` index keeps the dirty-set query cheap.

Usage:
    store = LocalTaskStore(Path("~/.local/share/tasksync/tasks.db").expanduser())
    store.upsert(task)
    for task in store.get_dirty("user-1"):
        ...

Thread-safety:
- file databases open a fresh connection per operation (WAL mode)
- ":memory:" databases share one connection, serialized by the store lock
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from tasksync.core.errors import StorageFault
from tasksync.core.tasks.models import Task

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    completed INTEGER NOT NULL DEFAULT 0,
    priority TEXT NOT NULL DEFAULT 'medium',
    due_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    dirty INTEGER NOT NULL DEFAULT 1,
    seq INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_owner_dirty ON tasks(owner_id, dirty);
CREATE INDEX IF NOT EXISTS idx_tasks_owner_seq ON tasks(owner_id, seq);

CREATE TABLE IF NOT EXISTS sync_state (
    owner_id TEXT PRIMARY KEY,
    last_pass_at TEXT,
    last_error TEXT
);
"""


def get_default_db_path() -> Path:
    """
    Default database location.

    Returns:
        $XDG_DATA_HOME/tasksync/tasks.db (defaults to ~/.local/share)
    """
    xdg_data_home = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
    return Path(xdg_data_home) / "tasksync" / "tasks.db"


class StoredSyncState(BaseModel):
    """Persisted observability state of the sync coordinator for one owner."""

    owner_id: str
    last_pass_at: datetime | None = None
    last_error: str | None = None


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class LocalTaskStore:
    """
    Durable keyed persistence for task records.

    Example:
        >>> store = LocalTaskStore(":memory:")
        >>> store.get("nobody")
        []
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """
        Open (and if needed create) the store.

        Args:
            db_path: Path to the SQLite file, or ":memory:" for an in-process
                database. Defaults to get_default_db_path().

        Raises:
            StorageFault: If the database cannot be created or opened.
        """
        if db_path is None:
            db_path = get_default_db_path()
        self._is_memory = str(db_path) == MEMORY
        self.db_path: Path | str = MEMORY if self._is_memory else Path(db_path)
        self._lock = threading.RLock()
        self._shared_conn: sqlite3.Connection | None = None
        self._init_database()
        logger.debug("LocalTaskStore ready db=%s", self.db_path)

    # ---- low-level helpers ----

    def _open(self) -> sqlite3.Connection:
        if self._is_memory:
            if self._shared_conn is None:
                self._shared_conn = sqlite3.connect(MEMORY, check_same_thread=False)
                self._shared_conn.row_factory = sqlite3.Row
            return self._shared_conn

        assert isinstance(self.db_path, Path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def _connection(self, action: str) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection inside one transaction.

        Commits on success, rolls back on error. sqlite3 and OS errors come
        out as StorageFault.
        """
        with self._lock:
            conn: sqlite3.Connection | None = None
            try:
                conn = self._open()
                yield conn
                conn.commit()
            except (sqlite3.Error, OSError) as e:
                self._rollback(conn, action)
                raise StorageFault(f"Local store failed to {action}: {e}", action=action) from e
            except Exception:
                self._rollback(conn, action)
                raise
            finally:
                if conn is not None and not self._is_memory:
                    conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection | None, action: str) -> None:
        if conn is None:
            return
        try:
            conn.rollback()
        except sqlite3.Error:
            logger.debug("Rollback failed during %s", action, exc_info=True)

    def _init_database(self) -> None:
        with self._connection("initialize schema") as conn:
            conn.executescript(SCHEMA_DDL)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        try:
            return Task(
                id=row["id"],
                owner_id=row["owner_id"],
                title=row["title"],
                description=row["description"],
                completed=bool(row["completed"]),
                priority=row["priority"],
                due_date=row["due_date"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                dirty=bool(row["dirty"]),
            )
        except ValidationError as e:
            raise StorageFault(f"Corrupt task row {row['id']}: {e}", task_id=row["id"]) from e

    # ---- record operations ----

    def upsert(self, task: Task) -> None:
        """
        Insert or fully replace the record at ``task.id``.

        Last writer wins; there is no field merge. An existing record keeps
        its insertion position and its owner.

        Raises:
            StorageFault: On I/O error.
            ValueError: If the id already belongs to a different owner.
        """
        params: dict[str, Any] = {
            "id": task.id,
            "owner_id": task.owner_id,
            "title": task.title,
            "description": task.description,
            "completed": int(task.completed),
            "priority": task.priority.value,
            "due_date": _ts(task.due_date),
            "created_at": _ts(task.created_at),
            "updated_at": _ts(task.updated_at),
            "dirty": int(task.dirty),
        }
        with self._connection("upsert task") as conn:
            cursor = conn.execute(
                """
                INSERT INTO tasks (
                    id, owner_id, title, description, completed, priority,
                    due_date, created_at, updated_at, dirty, seq
                )
                VALUES (
                    :id, :owner_id, :title, :description, :completed, :priority,
                    :due_date, :created_at, :updated_at, :dirty,
                    (SELECT COALESCE(MAX(seq), 0) + 1 FROM tasks)
                )
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    completed = excluded.completed,
                    priority = excluded.priority,
                    due_date = excluded.due_date,
                    updated_at = excluded.updated_at,
                    dirty = excluded.dirty
                WHERE tasks.owner_id = excluded.owner_id
                """,
                params,
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Task {task.id} belongs to a different owner")
        logger.debug("Upserted task id=%s dirty=%s", task.id, task.dirty)

    def get(self, owner_id: str) -> list[Task]:
        """All records owned by ``owner_id``, in insertion order. Empty if none."""
        with self._connection("list tasks") as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE owner_id = ? ORDER BY seq ASC",
                (owner_id,),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def get_dirty(self, owner_id: str) -> list[Task]:
        """Records owned by ``owner_id`` that still need a remote write."""
        with self._connection("list dirty tasks") as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE owner_id = ? AND dirty = 1 ORDER BY seq ASC",
                (owner_id,),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def get_task(self, task_id: str, owner_id: str) -> Task | None:
        """A single record, or None if absent or owned by someone else."""
        with self._connection("read task") as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND owner_id = ?",
                (task_id, owner_id),
            ).fetchone()
        return self._row_to_task(row) if row is not None else None

    def count_dirty(self, owner_id: str) -> int:
        with self._connection("count dirty tasks") as conn:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE owner_id = ? AND dirty = 1",
                (owner_id,),
            ).fetchone()
        return int(count)

    def remove(self, task_id: str, owner_id: str) -> bool:
        """
        Delete the record if owned by ``owner_id``.

        Removing a missing id is a no-op.

        Returns:
            True if a row was deleted.
        """
        with self._connection("remove task") as conn:
            cursor = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND owner_id = ?",
                (task_id, owner_id),
            )
            removed = cursor.rowcount > 0
        logger.debug("Removed task id=%s removed=%s", task_id, removed)
        return removed

    def mark_synced(self, task: Task) -> bool:
        """
        Clear the dirty flag for the exact version that was pushed.

        If the record changed locally since ``task`` was read (different
        ``updated_at``) or was deleted, nothing is written and the newer
        local state stays dirty.

        Returns:
            True if the stored record is now clean.
        """
        with self._connection("mark task synced") as conn:
            cursor = conn.execute(
                """
                UPDATE tasks SET dirty = 0
                WHERE id = ? AND owner_id = ? AND updated_at = ?
                """,
                (task.id, task.owner_id, _ts(task.updated_at)),
            )
            return cursor.rowcount > 0

    # ---- sync state ----

    def get_sync_state(self, owner_id: str) -> StoredSyncState:
        with self._connection("read sync state") as conn:
            row = conn.execute(
                "SELECT * FROM sync_state WHERE owner_id = ?",
                (owner_id,),
            ).fetchone()
        if row is None:
            return StoredSyncState(owner_id=owner_id)
        return StoredSyncState(
            owner_id=owner_id,
            last_pass_at=row["last_pass_at"],
            last_error=row["last_error"],
        )

    def save_sync_state(self, state: StoredSyncState) -> None:
        with self._connection("save sync state") as conn:
            conn.execute(
                """
                INSERT INTO sync_state (owner_id, last_pass_at, last_error)
                VALUES (?, ?, ?)
                ON CONFLICT(owner_id) DO UPDATE SET
                    last_pass_at = excluded.last_pass_at,
                    last_error = excluded.last_error
                """,
                (state.owner_id, _ts(state.last_pass_at), state.last_error),
            )

    def close(self) -> None:
        """Close the shared in-memory connection, if any."""
        with self._lock:
            if self._shared_conn is not None:
                self._shared_conn.close()
                self._shared_conn = None
