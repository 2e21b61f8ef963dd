"""In-memory bucket used by tests and small tooling runs."""

from __future__ import annotations

import io
import threading
from typing import BinaryIO, Callable, Dict, Mapping, Optional

from .base import BoundedReader, ObjectNotFoundError

__all__ = ("MemoryBucket", "MemoryObject")


class MemoryObject:
    """A named byte string supporting ranged reads."""

    def __init__(
        self,
        name: str,
        data: bytes,
        *,
        on_open: Optional[Callable[[str, int, int], None]] = None,
    ) -> None:
        self.name = name
        self._data = bytes(data)
        self._on_open = on_open

    def open_range(self, offset: int, length: int) -> BinaryIO:
        if self._on_open is not None:
            self._on_open(self.name, offset, length)
        stream = io.BytesIO(self._data)
        stream.seek(offset)
        return BoundedReader(stream, length)


class MemoryBucket:
    """Bucket over a mapping of object names to bytes.

    ``on_open`` is invoked for every ranged read with ``(name, offset,
    length)``; it may raise to simulate storage failures. ``opened`` records
    the same tuples for assertions.
    """

    def __init__(
        self,
        objects: Mapping[str, bytes],
        *,
        on_open: Optional[Callable[[str, int, int], None]] = None,
    ) -> None:
        self._objects: Dict[str, bytes] = dict(objects)
        self._user_hook = on_open
        self._lock = threading.Lock()
        self.opened: list[tuple[str, int, int]] = []

    def _record(self, name: str, offset: int, length: int) -> None:
        with self._lock:
            self.opened.append((name, offset, length))
        if self._user_hook is not None:
            self._user_hook(name, offset, length)

    def object(self, name: str) -> MemoryObject:
        if name not in self._objects:
            raise ObjectNotFoundError(f"No such object: {name}", object_name=name, status=404)
        return MemoryObject(name, self._objects[name], on_open=self._record)
