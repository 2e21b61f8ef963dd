"""Exception taxonomy for the packed-digit codec and stream readers.

Every error raised here is a *data* error: the requested range does not exist,
the stored payload is shorter than its catalog entry promises, or a packed
word cannot be represented in its radix. None of them are transient, so retry
policies must let them propagate. Transport failures are reported by the
storage layer as :class:`OSError` subclasses instead.
"""

from __future__ import annotations

__all__ = (
    "DigitStreamError",
    "CatalogError",
    "DecodeError",
    "OutOfRangeError",
    "ShortReadError",
)


class DigitStreamError(Exception):
    """Base class for catalog, decode and range failures."""


class CatalogError(DigitStreamError):
    """Raised when block descriptors do not form a valid contiguous catalog."""


class DecodeError(DigitStreamError):
    """Raised when a packed word does not fit its fixed digit width."""

    def __init__(self, message: str, *, word: int | None = None, radix: int | None = None):
        super().__init__(message)
        self.word = word
        self.radix = radix


class OutOfRangeError(DigitStreamError):
    """Raised when an offset falls outside the addressable stream."""

    def __init__(self, message: str, *, offset: int | None = None, limit: int | None = None):
        super().__init__(message)
        self.offset = offset
        self.limit = limit


class ShortReadError(DigitStreamError):
    """Raised when a ranged read ends before the bytes its block declares."""

    def __init__(
        self,
        message: str,
        *,
        object_name: str | None = None,
        expected: int | None = None,
        received: int | None = None,
    ):
        super().__init__(message)
        self.object_name = object_name
        self.expected = expected
        self.received = received
