"""Failures that end a palindrome search run.

Storage and digit-stream errors stay what they are while a chunk is being
retried. Once a chunk gives up, the worker wraps the last error in
:class:`ChunkFailedError`; the run harness re-raises the first such failure
as :class:`RunAbortedError` after every thread has stopped. A crash of the
scheduler thread is recorded the same way, as :class:`SchedulerError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Chunk

__all__ = (
    "PalindromeSearchError",
    "ChunkFailedError",
    "SchedulerError",
    "OutputError",
    "RunAbortedError",
    "ConfigError",
)


class PalindromeSearchError(Exception):
    """Base class for pipeline failures."""


class ChunkFailedError(PalindromeSearchError):
    """A chunk could not be fetched, decoded, scanned or written."""

    def __init__(self, chunk: "Chunk", attempts: int, cause: BaseException):
        super().__init__(
            f"Chunk {chunk.id} (start={chunk.start}) failed after {attempts} attempt(s): "
            f"{type(cause).__name__}: {cause}"
        )
        self.chunk = chunk
        self.attempts = attempts
        self.cause = cause


class SchedulerError(PalindromeSearchError):
    """The scheduler thread stopped dispatching chunks because of an error."""


class OutputError(PalindromeSearchError):
    """Writing a chunk's result file failed."""

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RunAbortedError(PalindromeSearchError):
    """A run was cancelled because a chunk or the scheduler failed."""

    def __init__(self, failure: PalindromeSearchError, *, chunks_completed: int = 0):
        super().__init__(f"Run aborted: {failure}")
        self.failure = failure
        self.chunks_completed = chunks_completed


class ConfigError(PalindromeSearchError, ValueError):
    """Configuration could not be read or failed validation."""
