"""
Offline-first synchronization engine.

Mutations land in the local store first and are pushed to the remote
store best-effort; the coordinator converges whatever is left dirty.

Example:
    >>> from tasksync.core.sync import SyncEngine
    >>> engine = SyncEngine.from_config(load_config())
    >>> engine.add(title="Call the plumber")
    >>> result = engine.run_sync_pass()
    >>> print(result.summary())
"""

from tasksync.core.sync.coordinator import SyncCoordinator
from tasksync.core.sync.engine import SyncEngine
from tasksync.core.sync.models import (
    MutationOutcome,
    PassState,
    RemoteOutcome,
    SyncPassResult,
)
from tasksync.core.sync.pipeline import MutationPipeline

__all__ = [
    "MutationOutcome",
    "MutationPipeline",
    "PassState",
    "RemoteOutcome",
    "SyncCoordinator",
    "SyncEngine",
    "SyncPassResult",
]
