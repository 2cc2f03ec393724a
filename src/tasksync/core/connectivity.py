"""
Connectivity signal.

Detecting whether the remote is reachable is the host's job (OS network
callbacks, a health probe, a CLI flag). The host pushes what it knows into
a ConnectivitySignal; the engine reads it and subscribes to transitions.

Example:
    >>> signal = ConnectivitySignal(reachable=False)
    >>> unsubscribe = signal.subscribe(lambda reachable: print("now", reachable))
    >>> signal.set_reachable(True)
    now True
    >>> unsubscribe()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivitySignal:
    """Thread-safe reachability flag with change notification."""

    def __init__(self, reachable: bool = False, connection_type: str | None = None) -> None:
        self._lock = threading.Lock()
        self._reachable = reachable
        self._connection_type = connection_type
        self._listeners: list[ConnectivityListener] = []

    def is_reachable(self) -> bool:
        with self._lock:
            return self._reachable

    @property
    def connection_type(self) -> str | None:
        """Host-supplied description of the link (e.g. "wifi"), if any."""
        with self._lock:
            return self._connection_type

    def set_connection_type(self, connection_type: str | None) -> None:
        with self._lock:
            self._connection_type = connection_type

    def set_reachable(self, reachable: bool) -> None:
        """
        Update reachability.

        Listeners run on the calling thread, and only when the value
        actually changes. A failing listener is logged and skipped.
        """
        with self._lock:
            if self._reachable == reachable:
                return
            self._reachable = reachable
            listeners = list(self._listeners)

        logger.info("Connectivity changed: reachable=%s", reachable)
        for listener in listeners:
            try:
                listener(reachable)
            except Exception:
                logger.exception("Connectivity listener %r failed", listener)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """
        Register a listener for reachability transitions.

        Returns:
            A callable that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
