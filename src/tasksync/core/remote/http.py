"""
HTTP document store adapter.

Talks to a REST document store laid out as ``{base_url}/{collection}/{id}``:

- ``PUT`` with the JSON document upserts the record
- ``DELETE`` removes it; 404 counts as already deleted

Example:
    >>> adapter = HTTPRemoteAdapter(
    ...     base_url="https://tasks.example.com/v1",
    ...     token="secret",
    ... )
    >>> adapter.put(task)
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from tasksync import __version__
from tasksync.core.errors import RemoteWriteFault
from tasksync.core.remote.adapter import register_adapter
from tasksync.core.tasks.models import Task

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@register_adapter("http")
class HTTPRemoteAdapter:
    """
    Remote adapter backed by an HTTP document store.

    Each call is a single request with its own timeout. Timeouts, transport
    errors and non-2xx responses all become RemoteWriteFault.
    """

    def __init__(
        self,
        base_url: str,
        *,
        collection: str = "tasks",
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Args:
            base_url: Root URL of the document store
            collection: Collection (path segment) holding task documents
            token: Optional bearer token
            timeout: Per-request timeout in seconds
            client: Pre-built httpx client (used by tests with MockTransport)
        """
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.collection = collection.strip("/")
        self.timeout = timeout
        self._headers = self._build_headers(token)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    @staticmethod
    def _build_headers(token: str | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"tasksync/{__version__}",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _url(self, task_id: str) -> str:
        return f"{self.base_url}/{self.collection}/{quote(task_id, safe='')}"

    def _request(
        self, method: str, task_id: str, json: dict[str, object] | None = None
    ) -> httpx.Response:
        url = self._url(task_id)
        try:
            return self._client.request(
                method, url, json=json, headers=self._headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise RemoteWriteFault(
                f"{method} {url} timed out after {self.timeout}s", task_id=task_id
            ) from e
        except httpx.HTTPError as e:
            raise RemoteWriteFault(f"{method} {url} failed: {e}", task_id=task_id) from e

    def put(self, task: Task) -> None:
        response = self._request("PUT", task.id, json=task.to_remote_document())
        if not response.is_success:
            raise RemoteWriteFault(
                f"PUT {task.id} rejected: {response.status_code} {response.reason_phrase}",
                task_id=task.id,
                status_code=response.status_code,
            )
        logger.debug("Remote put ok id=%s status=%s", task.id, response.status_code)

    def delete(self, task_id: str) -> None:
        response = self._request("DELETE", task_id)
        if response.status_code == 404:
            logger.debug("Remote delete id=%s: already absent", task_id)
            return
        if not response.is_success:
            raise RemoteWriteFault(
                f"DELETE {task_id} rejected: {response.status_code} {response.reason_phrase}",
                task_id=task_id,
                status_code=response.status_code,
            )
        logger.debug("Remote delete ok id=%s", task_id)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
