"""
Configuration data models for tasksync.

These models define the structure of .tasksync.json and
~/.config/tasksync/config.json, validated via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StoreConfig(BaseModel):
    """Where the local record store lives."""

    path: Optional[str] = Field(
        default=None,
        description="SQLite file path (defaults to $XDG_DATA_HOME/tasksync/tasks.db)",
    )


class RemoteConfig(BaseModel):
    """
    Remote document store settings.

    kind selects the adapter: "none" (local only), "http" or "directory".
    """

    kind: str = Field(
        default="none",
        pattern="^(none|http|directory)$",
        description="Remote adapter: 'none', 'http' or 'directory'",
    )
    base_url: Optional[str] = Field(default=None, description="HTTP document store root URL")
    collection: str = Field(default="tasks", min_length=1, description="Collection name")
    token: Optional[str] = Field(default=None, description="Bearer token for the HTTP store")
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Per-request timeout for remote calls",
    )
    directory: Optional[str] = Field(
        default=None, description="Root directory for the directory store"
    )

    @model_validator(mode="after")
    def check_kind_settings(self) -> "RemoteConfig":
        """Each adapter kind needs its location."""
        if self.kind == "http" and not self.base_url:
            raise ValueError("remote.base_url is required when remote.kind is 'http'")
        if self.kind == "directory" and not self.directory:
            raise ValueError("remote.directory is required when remote.kind is 'directory'")
        return self


class SyncConfig(BaseModel):
    """Reconciliation behaviour."""

    record_attempts: int = Field(
        default=1,
        ge=1,
        description="Remote put attempts per record within one sync pass",
    )
    retry_base_delay: float = Field(
        default=0.5,
        ge=0.0,
        description="Seconds before the second attempt; doubles per further attempt",
    )
    auto_sync_on_reconnect: bool = Field(
        default=True,
        description="Start a sync pass whenever connectivity comes back",
    )
    journal: bool = Field(
        default=False,
        description="Write a JSONL journal of sync events",
    )


class TaskSyncConfig(BaseModel):
    """
    Top-level tasksync configuration.

    Example:
        >>> config = TaskSyncConfig(user_id="alice")
        >>> config.remote.kind
        'none'
    """

    user_id: Optional[str] = Field(
        default=None,
        description="Signed-in user id (normally supplied by the host app)",
    )
    store: StoreConfig = Field(default_factory=StoreConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    model_config = ConfigDict(extra="ignore")

    @property
    def remote_configured(self) -> bool:
        return self.remote.kind != "none"
