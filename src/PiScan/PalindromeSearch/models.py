"""Work units and scan results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

__all__ = ("Chunk", "PalindromeRecord", "RunResult")


@dataclass(frozen=True)
class Chunk:
    """One unit of work: a digit range plus the centers it reports.

    Attributes:
        start: First digit of the chunk buffer.
        length: Digits read into the buffer.
        id: Nominal start; names the chunk's output file.
        owned_start: First absolute center this chunk reports.
        owned_end: Absolute center past the last one this chunk reports.
    """

    start: int
    length: int
    id: int
    owned_start: int
    owned_end: int

    @property
    def end(self) -> int:
        return self.start + self.length

    def owns(self, center_index: int) -> bool:
        return self.owned_start <= center_index < self.owned_end


@dataclass(frozen=True)
class PalindromeRecord:
    """A maximal odd-length palindrome found in a chunk."""

    chunk_start: int
    center_index: int
    text: str
    length: int

    def format_line(self) -> str:
        return f"{self.chunk_start}, {self.center_index}, {self.text}, {self.length}\n"


@dataclass
class RunResult:
    """Counters reported at the end of a run."""

    chunks_planned: int = 0
    chunks_completed: int = 0
    records_written: int = 0
    retries: int = 0
    cancelled: bool = False
    output_files: list[str] = field(default_factory=list)
    elapsed_s: Optional[float] = None
