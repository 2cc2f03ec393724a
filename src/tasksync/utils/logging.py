"""
Structured JSONL journal of sync activity.

SyncEventLogger appends one JSON object per line to
~/.local/share/tasksync/logs/{user}.jsonl so sync history can be inspected
with jq after the fact:

{
  "timestamp": "2026-01-15T12:34:56.789Z",
  "event_type": "pass_end",
  "data": {"converged": 3, "failed": 1, "pending": 1}
}

Journal writes never raise; a failing journal must not break sync work.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be journaled."""

    PASS_START = "pass_start"
    PASS_END = "pass_end"
    PASS_REJECTED = "pass_rejected"
    RECORD_FAILED = "record_failed"
    REMOTE_WRITE_FAILED = "remote_write_failed"
    REMOTE_DELETE_FAILED = "remote_delete_failed"


class LogEntry(BaseModel):
    """A single journal line."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime = Field(..., description="When the event occurred (ISO 8601)")
    event_type: EventType = Field(..., description="Type of event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")


class SyncEventLogger:
    """
    Append-only JSONL journal.

    Example:
        journal = SyncEventLogger.init("user-1")
        journal.log_event(EventType.PASS_START, {"dirty": 4})
    """

    def __init__(self, log_file: Path | str) -> None:
        self.log_file = Path(log_file)
        self._lock = threading.Lock()

    @staticmethod
    def init(user_id: str) -> SyncEventLogger:
        """
        Journal for one user under $XDG_DATA_HOME/tasksync/logs.

        Raises:
            ValueError: If user_id is empty
        """
        if not user_id:
            raise ValueError("user_id cannot be empty")

        xdg_data_home = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
        safe_name = "".join(c if c.isalnum() or c in "-_." else "_" for c in user_id)
        return SyncEventLogger(Path(xdg_data_home) / "tasksync" / "logs" / f"{safe_name}.jsonl")

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            data=data or {},
        )
        line = entry.model_dump_json(exclude_none=True) + "\n"
        try:
            with self._lock:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                with open(self.log_file, "a", encoding="utf-8") as f:
                    f.write(line)
        except OSError as e:
            logger.warning("Failed to write sync journal %s: %s", self.log_file, e)

    def read_events(self) -> list[LogEntry]:
        """All journaled entries, oldest first. Unparseable lines are skipped."""
        if not self.log_file.exists():
            return []
        entries: list[LogEntry] = []
        with open(self.log_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(LogEntry.model_validate_json(line))
                except ValueError:
                    logger.debug("Skipping malformed journal line: %s", line[:80])
        return entries
