"""Object storage adapters (HTTP, local filesystem, in-memory)."""

from .base import (
    BoundedReader,
    Bucket,
    ObjectNotFoundError,
    StorageError,
    StorageObject,
    TransientStorageError,
)
from .http import HttpBucket, HttpObject, build_http_client
from .local import LocalBucket
from .memory import MemoryBucket

__all__ = [
    "Bucket",
    "StorageObject",
    "StorageError",
    "TransientStorageError",
    "ObjectNotFoundError",
    "BoundedReader",
    "HttpBucket",
    "HttpObject",
    "build_http_client",
    "LocalBucket",
    "MemoryBucket",
]
