"""
Tests for ConnectivitySignal and StaticIdentity.
"""

from __future__ import annotations

import pytest

from tasksync.core.connectivity import ConnectivitySignal
from tasksync.core.identity import IdentityProvider, StaticIdentity


class TestConnectivitySignal:
    """Test reachability state and notifications."""

    def test_initial_state(self):
        assert ConnectivitySignal().is_reachable() is False
        assert ConnectivitySignal(reachable=True).is_reachable() is True

    def test_notifies_on_change(self):
        signal = ConnectivitySignal(reachable=False)
        seen: list[bool] = []
        signal.subscribe(seen.append)

        signal.set_reachable(True)
        signal.set_reachable(False)

        assert seen == [True, False]

    def test_no_notification_without_change(self):
        """Test repeating the current value does not fire listeners."""
        signal = ConnectivitySignal(reachable=True)
        seen: list[bool] = []
        signal.subscribe(seen.append)

        signal.set_reachable(True)

        assert seen == []

    def test_unsubscribe(self):
        signal = ConnectivitySignal()
        seen: list[bool] = []
        unsubscribe = signal.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        signal.set_reachable(True)

        assert seen == []

    def test_failing_listener_does_not_block_others(self, caplog):
        signal = ConnectivitySignal()
        seen: list[bool] = []

        def broken(reachable: bool) -> None:
            raise RuntimeError("boom")

        signal.subscribe(broken)
        signal.subscribe(seen.append)

        signal.set_reachable(True)

        assert seen == [True]
        assert signal.is_reachable() is True
        assert "failed" in caplog.text

    def test_connection_type(self):
        signal = ConnectivitySignal(reachable=True, connection_type="wifi")
        assert signal.connection_type == "wifi"
        signal.set_connection_type("cellular")
        assert signal.connection_type == "cellular"


class TestStaticIdentity:
    """Test the host-supplied identity provider."""

    def test_signed_in(self):
        identity = StaticIdentity("user-1")
        assert identity.current_user_id() == "user-1"

    def test_empty_string_means_signed_out(self):
        assert StaticIdentity("").current_user_id() is None

    def test_sign_in_and_out(self):
        identity = StaticIdentity()
        identity.sign_in("user-2")
        assert identity.current_user_id() == "user-2"
        identity.sign_out()
        assert identity.current_user_id() is None

    def test_sign_in_requires_id(self):
        with pytest.raises(ValueError):
            StaticIdentity().sign_in("")

    def test_satisfies_protocol(self):
        assert isinstance(StaticIdentity(), IdentityProvider)
