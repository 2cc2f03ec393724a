"""
Remote record adapter protocol and registry.

A remote adapter is a thin bridge to the authoritative document store.
Every call either fully applies or raises RemoteWriteFault; adapters never
retry (retry policy belongs to the sync coordinator).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from tasksync.core.errors import RemoteWriteFault
from tasksync.core.tasks.models import Task


@runtime_checkable
class RemoteRecordAdapter(Protocol):
    """
    Protocol for remote document store adapters.

    Implementations must make both operations idempotent and keyed by the
    task id, so at-least-once delivery is safe.
    """

    def put(self, task: Task) -> None:
        """
        Upsert the whole record at ``task.id``.

        Raises:
            RemoteWriteFault: On network, timeout or permission failure.
        """
        ...

    def delete(self, task_id: str) -> None:
        """
        Delete the record at ``task_id``; an already-absent record is success.

        Raises:
            RemoteWriteFault: On network, timeout or permission failure.
        """
        ...


_adapters: dict[str, Callable[..., RemoteRecordAdapter]] = {}


def register_adapter(kind: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Register a remote adapter factory under ``kind``.

    Example:
        >>> @register_adapter("memory")
        ... class MemoryAdapter: ...
    """

    def decorator(factory: Callable[..., Any]) -> Callable[..., Any]:
        _adapters[kind] = factory
        return factory

    return decorator


def get_adapter(kind: str, **options: Any) -> RemoteRecordAdapter:
    """
    Build a registered adapter.

    Raises:
        ValueError: If no adapter is registered under ``kind``.
    """
    try:
        factory = _adapters[kind]
    except KeyError:
        available = ", ".join(sorted(_adapters)) or "none"
        raise ValueError(f"Unknown remote adapter '{kind}' (available: {available})") from None
    return factory(**options)


def list_adapters() -> list[str]:
    return sorted(_adapters)


@register_adapter("none")
class UnconfiguredRemoteAdapter:
    """Stand-in when no remote store is configured; every call is a fault."""

    def put(self, task: Task) -> None:
        raise RemoteWriteFault("No remote store configured", task_id=task.id)

    def delete(self, task_id: str) -> None:
        raise RemoteWriteFault("No remote store configured", task_id=task_id)
