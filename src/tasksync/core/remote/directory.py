"""
Directory-backed document store adapter.

Stores one ``<id>.json`` document per task under a root directory, for
example a folder shared through a file-sync service. Writes go through a
temp file and an atomic replace, so a reader never sees half a document.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from tasksync.core.errors import RemoteWriteFault
from tasksync.core.remote.adapter import register_adapter
from tasksync.core.tasks.models import Task

logger = logging.getLogger(__name__)


@register_adapter("directory")
class DirectoryRemoteAdapter:
    """Remote adapter writing JSON documents into a directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory).expanduser()

    def document_path(self, task_id: str) -> Path:
        if not task_id or os.sep in task_id or task_id in (".", ".."):
            raise RemoteWriteFault(
                f"Invalid task id for directory store: {task_id!r}", task_id=task_id
            )
        return self.directory / f"{task_id}.json"

    def put(self, task: Task) -> None:
        path = self.document_path(task.id)
        temp_path: str | None = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Unique per write; concurrent puts of one id must not share it
            fd, temp_path = tempfile.mkstemp(
                dir=self.directory, prefix=f".{task.id}.", suffix=".json.tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(task.to_remote_document(), f, indent=2)
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path is not None:
                Path(temp_path).unlink(missing_ok=True)
            raise RemoteWriteFault(f"Failed to write {path}: {e}", task_id=task.id) from e
        logger.debug("Wrote remote document %s", path)

    def delete(self, task_id: str) -> None:
        path = self.document_path(task_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise RemoteWriteFault(f"Failed to delete {path}: {e}", task_id=task_id) from e
        logger.debug("Deleted remote document %s", path)
