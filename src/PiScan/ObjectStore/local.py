"""Filesystem bucket: object names are paths relative to a root directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from .base import BoundedReader, ObjectNotFoundError, StorageError

__all__ = ("LocalBucket", "LocalObject")

logger = logging.getLogger(__name__)


class LocalObject:
    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path

    def open_range(self, offset: int, length: int) -> BinaryIO:
        try:
            handle = self.path.open("rb")
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(
                f"No such object: {self.name}", object_name=self.name
            ) from exc
        try:
            handle.seek(offset)
        except OSError as exc:
            handle.close()
            raise StorageError(
                f"Cannot seek {self.name} to {offset}: {exc}", object_name=self.name
            ) from exc
        logger.debug("Opened %s [%d, +%d)", self.name, offset, length)
        return BoundedReader(handle, length)


class LocalBucket:
    """Serve objects from files below ``root``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def object(self, name: str) -> LocalObject:
        path = (self.root / name).resolve()
        root = self.root.resolve()
        if root not in path.parents and path != root:
            raise StorageError(f"Object name escapes bucket root: {name}", object_name=name)
        return LocalObject(name, path)
