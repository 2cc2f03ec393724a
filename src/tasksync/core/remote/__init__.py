"""
Remote record adapters.

Importing this package registers the built-in adapters ("http" and
"directory") with the adapter registry.

Example:
    >>> from tasksync.core.remote import get_adapter
    >>> remote = get_adapter("directory", directory="/tmp/tasks-remote")
"""

from tasksync.core.remote.adapter import (
    RemoteRecordAdapter,
    get_adapter,
    list_adapters,
    register_adapter,
)
from tasksync.core.remote.directory import DirectoryRemoteAdapter
from tasksync.core.remote.http import HTTPRemoteAdapter

__all__ = [
    "DirectoryRemoteAdapter",
    "HTTPRemoteAdapter",
    "RemoteRecordAdapter",
    "get_adapter",
    "list_adapters",
    "register_adapter",
]
