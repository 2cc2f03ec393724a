"""
Tests for HTTPRemoteAdapter.

Requests go through httpx.MockTransport; nothing leaves the process.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone

import httpx
import pytest

from tasksync import __version__
from tasksync.core.errors import RemoteWriteFault
from tasksync.core.remote import HTTPRemoteAdapter, get_adapter
from tasksync.core.tasks.models import Task

T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_task(task_id: str = "1700000000000abcdefghi") -> Task:
    return Task(id=task_id, owner_id="user-1", title="Buy milk", created_at=T0, updated_at=T0)


def make_adapter(
    handler: Callable[[httpx.Request], httpx.Response], **kwargs: object
) -> HTTPRemoteAdapter:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HTTPRemoteAdapter("https://store.example.com/v1/", client=client, **kwargs)


class TestHTTPRemoteAdapterPut:
    """Test put()."""

    def test_put_sends_document(self):
        """Test PUT goes to {base}/{collection}/{id} with the JSON document."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        adapter = make_adapter(handler, token="secret")
        task = make_task()
        adapter.put(task)

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "PUT"
        assert str(request.url) == f"https://store.example.com/v1/tasks/{task.id}"
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["User-Agent"] == f"tasksync/{__version__}"
        body = json.loads(request.content)
        assert body == task.to_remote_document()
        assert "dirty" not in body

    def test_custom_collection(self):
        urls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(204)

        make_adapter(handler, collection="/todos/").put(make_task("abc"))
        assert urls == ["https://store.example.com/v1/todos/abc"]

    def test_task_id_is_quoted(self):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.raw_path.decode())
            return httpx.Response(200)

        make_adapter(handler).put(make_task("a/b c"))
        assert paths == ["/v1/tasks/a%2Fb%20c"]

    def test_no_token_no_auth_header(self):
        headers: list[httpx.Headers] = []

        def handler(request: httpx.Request) -> httpx.Response:
            headers.append(request.headers)
            return httpx.Response(200)

        make_adapter(handler).put(make_task())
        assert "Authorization" not in headers[0]

    def test_error_status_raises_fault(self):
        adapter = make_adapter(lambda request: httpx.Response(403))

        with pytest.raises(RemoteWriteFault) as exc_info:
            adapter.put(make_task("abc"))

        assert exc_info.value.status_code == 403
        assert exc_info.value.task_id == "abc"

    def test_put_404_is_a_fault(self):
        adapter = make_adapter(lambda request: httpx.Response(404))
        with pytest.raises(RemoteWriteFault):
            adapter.put(make_task())

    def test_timeout_raises_fault(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = make_adapter(handler, timeout=2.5)

        with pytest.raises(RemoteWriteFault, match="timed out after 2.5s") as exc_info:
            adapter.put(make_task())
        assert exc_info.value.status_code is None

    def test_connection_error_raises_fault(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RemoteWriteFault, match="connection refused"):
            make_adapter(handler).put(make_task())


class TestHTTPRemoteAdapterDelete:
    """Test delete()."""

    def test_delete_success(self):
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(204)

        make_adapter(handler).delete("abc")
        assert methods == ["DELETE"]

    def test_delete_missing_is_success(self):
        """Test deleting an already-absent record is idempotent."""
        make_adapter(lambda request: httpx.Response(404)).delete("abc")

    def test_delete_server_error_raises_fault(self):
        adapter = make_adapter(lambda request: httpx.Response(500))
        with pytest.raises(RemoteWriteFault) as exc_info:
            adapter.delete("abc")
        assert exc_info.value.status_code == 500


class TestHTTPRemoteAdapterConfig:
    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            HTTPRemoteAdapter("")

    def test_registered_as_http(self):
        adapter = get_adapter("http", base_url="https://store.example.com")
        try:
            assert isinstance(adapter, HTTPRemoteAdapter)
            assert adapter.base_url == "https://store.example.com"
        finally:
            adapter.close()
