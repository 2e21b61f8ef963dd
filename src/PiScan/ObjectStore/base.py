"""Bucket/object abstraction consumed by the digit catalog.

The catalog only needs two capabilities from storage: resolving an object by
name and opening a bounded ranged read on it. Everything else (transport,
authentication, caching) belongs to the concrete bucket.

Errors
------
All storage failures are :class:`OSError` subclasses so that retry policies
can treat them as I/O. :class:`TransientStorageError` marks failures that are
expected to succeed on a later attempt (timeouts, 429/5xx, dropped
connections).
"""

from __future__ import annotations

import io
from typing import BinaryIO, Protocol, runtime_checkable

__all__ = (
    "Bucket",
    "StorageObject",
    "StorageError",
    "TransientStorageError",
    "ObjectNotFoundError",
    "BoundedReader",
)


class StorageError(OSError):
    """Raised when a storage request fails."""

    def __init__(self, message: str, *, object_name: str | None = None, status: int | None = None):
        super().__init__(message)
        self.object_name = object_name
        self.status = status


class TransientStorageError(StorageError):
    """Raised for failures that are worth retrying."""


class ObjectNotFoundError(StorageError):
    """Raised when the named object does not exist."""


@runtime_checkable
class StorageObject(Protocol):
    name: str

    def open_range(self, offset: int, length: int) -> BinaryIO:
        """Open a read of ``length`` bytes starting at ``offset``.

        The returned stream may yield fewer bytes than requested if the object
        is shorter; callers decide whether that is an error.
        """
        ...


@runtime_checkable
class Bucket(Protocol):
    def object(self, name: str) -> StorageObject:
        ...


class BoundedReader(io.RawIOBase):
    """Expose at most ``length`` bytes of an already positioned binary stream."""

    def __init__(self, stream: BinaryIO, length: int) -> None:
        super().__init__()
        self._stream = stream
        self._remaining = max(0, length)

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self._remaining <= 0 or len(b) == 0:
            return 0
        view = memoryview(b)[: min(len(b), self._remaining)]
        n = self._stream.readinto(view)
        if not n:
            return 0
        self._remaining -= n
        return n

    def close(self) -> None:
        if not self.closed:
            try:
                self._stream.close()
            finally:
                super().close()
