# === NAVMAP v1 ===
# {
#   "module": "PiScan.ObjectStore.http",
#   "purpose": "HTTP object storage with Range requests over a shared HTTPX client",
#   "sections": [
#     {"id": "build-http-client", "name": "build_http_client", "anchor": "function-build-http-client", "kind": "function"},
#     {"id": "httpbucket", "name": "HttpBucket", "anchor": "class-httpbucket", "kind": "class"},
#     {"id": "httpobject", "name": "HttpObject", "anchor": "class-httpobject", "kind": "class"},
#     {"id": "responsereader", "name": "_ResponseReader", "anchor": "class-responsereader", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""HTTP object storage backed by ranged ``GET`` requests.

Public object stores (for example a GCS bucket served from
``https://storage.googleapis.com/<bucket>``) expose every object at
``<base_url>/<object name>`` and honour ``Range: bytes=a-b``. Each
:meth:`HttpObject.open_range` call issues one streaming request; the response
is wrapped in a raw stream that owns it and closes it on ``close()``.

Status handling
---------------
- ``206``: expected partial content.
- ``200``: accepted only for reads starting at offset 0 (server ignored Range).
- ``404``: :class:`ObjectNotFoundError`.
- ``408``/``429``/``5xx``: :class:`TransientStorageError` (retryable).
- anything else: :class:`StorageError`.

Transport failures (timeouts, resets, protocol errors) are mapped to
:class:`TransientStorageError`, both when sending and while streaming.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Iterator, Optional
from urllib.parse import quote

import httpx

from .base import ObjectNotFoundError, StorageError, TransientStorageError

__all__ = ("HttpBucket", "HttpObject", "build_http_client")

logger = logging.getLogger(__name__)

_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def build_http_client(
    *,
    timeout_connect_s: float = 10.0,
    timeout_read_s: float = 60.0,
    max_connections: int = 200,
    user_agent: str = "PiScan/0.1",
) -> httpx.Client:
    """Build the shared client used by all workers.

    The pool is sized for one connection per worker; HTTPX clients are safe to
    share across threads.
    """
    timeout = httpx.Timeout(timeout_connect_s, read=timeout_read_s)
    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_connections,
    )
    return httpx.Client(
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    )


class _ResponseReader(io.RawIOBase):
    """Raw stream over a streaming HTTPX response body."""

    def __init__(self, response: httpx.Response, name: str, length: int) -> None:
        super().__init__()
        self._response = response
        self._name = name
        self._remaining = length
        self._chunks: Iterator[bytes] = response.iter_bytes()
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if len(b) == 0 or self._remaining <= 0:
            return 0
        if not self._pending:
            try:
                self._pending = next(self._chunks, b"")
            except httpx.TransportError as exc:
                raise TransientStorageError(
                    f"Stream interrupted for {self._name}: {exc}", object_name=self._name
                ) from exc
            if not self._pending:
                return 0
        n = min(len(b), len(self._pending), self._remaining)
        b[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        self._remaining -= n
        return n

    def close(self) -> None:
        if not self.closed:
            try:
                self._response.close()
            finally:
                super().close()


class HttpObject:
    def __init__(self, client: httpx.Client, name: str, url: str) -> None:
        self.name = name
        self.url = url
        self._client = client

    def open_range(self, offset: int, length: int) -> BinaryIO:
        if length <= 0:
            return io.BytesIO(b"")
        headers = {"Range": f"bytes={offset}-{offset + length - 1}"}
        request = self._client.build_request("GET", self.url, headers=headers)
        try:
            response = self._client.send(request, stream=True)
        except httpx.TransportError as exc:
            raise TransientStorageError(
                f"Request failed for {self.name}: {exc}", object_name=self.name
            ) from exc

        status = response.status_code
        if status == 206 or (status == 200 and offset == 0):
            logger.debug(
                "Ranged read opened",
                extra={"object": self.name, "offset": offset, "length": length, "status": status},
            )
            return _ResponseReader(response, self.name, length)

        response.close()
        if status == 404:
            raise ObjectNotFoundError(
                f"No such object: {self.name}", object_name=self.name, status=status
            )
        if status in _RETRYABLE_STATUSES:
            raise TransientStorageError(
                f"HTTP {status} reading {self.name}", object_name=self.name, status=status
            )
        raise StorageError(
            f"HTTP {status} reading {self.name} [{offset}, +{length})",
            object_name=self.name,
            status=status,
        )


class HttpBucket:
    """Bucket whose objects live at ``<base_url>/<name>``."""

    def __init__(self, base_url: str, client: Optional[httpx.Client] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or build_http_client()

    def object(self, name: str) -> HttpObject:
        return HttpObject(self.client, name, f"{self.base_url}/{quote(name, safe='/')}")

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "HttpBucket":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
