"""
Identity collaborator.

Sign-in happens elsewhere; the engine only needs the id of the current
user, or None when nobody is signed in.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityProvider(Protocol):
    """Supplies the opaque id of the signed-in user."""

    def current_user_id(self) -> str | None:
        """Return the current user id, or None if unauthenticated."""
        ...


class StaticIdentity:
    """
    Identity provider holding a user id set by the host.

    Example:
        >>> identity = StaticIdentity("user-1")
        >>> identity.current_user_id()
        'user-1'
        >>> identity.sign_out()
        >>> identity.current_user_id() is None
        True
    """

    def __init__(self, user_id: str | None = None) -> None:
        self._lock = threading.Lock()
        self._user_id = user_id or None

    def current_user_id(self) -> str | None:
        with self._lock:
            return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id cannot be empty")
        with self._lock:
            self._user_id = user_id

    def sign_out(self) -> None:
        with self._lock:
            self._user_id = None
