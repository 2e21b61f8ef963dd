"""Per-chunk result files.

Every chunk writes exactly one file, ``batch-<chunk.id>.txt``, holding one
line per record::

    <chunk_start>, <center_index>, <text>, <length>

Files are written to a temporary name and renamed into place, so a reader
never sees a half-written batch and a retried chunk simply replaces it.
"""

from __future__ import annotations

import logging
import os
import uuid
from contextlib import suppress
from pathlib import Path
from typing import Iterable

from .errors import OutputError
from .models import Chunk, PalindromeRecord

__all__ = ("OutputSink", "atomic_write_text", "batch_file_name")

logger = logging.getLogger(__name__)


def batch_file_name(chunk_id: int) -> str:
    return f"batch-{chunk_id}.txt"


def atomic_write_text(path: Path, lines: Iterable[str], *, temp_suffix: str = ".part") -> int:
    """Write ``lines`` to ``path`` via a temp file and return the byte count."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f"{path.name}{temp_suffix}.{uuid.uuid4().hex}")
    written = 0
    replaced = False
    try:
        with temp_path.open("w", encoding="ascii", newline="\n") as handle:
            for line in lines:
                handle.write(line)
                written += len(line)
        os.replace(temp_path, path)
        replaced = True
        return written
    finally:
        if not replaced:
            with suppress(FileNotFoundError):
                temp_path.unlink()


class OutputSink:
    """Writes chunk results under one output directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, chunk: Chunk) -> Path:
        return self.directory / batch_file_name(chunk.id)

    def write(self, chunk: Chunk, records: Iterable[PalindromeRecord]) -> Path:
        """Write ``records`` as ``chunk``'s batch file.

        Raises:
            OutputError: If the file cannot be written.
        """
        path = self.path_for(chunk)
        try:
            size = atomic_write_text(path, (record.format_line() for record in records))
        except OSError as exc:
            raise OutputError(f"Cannot write {path}: {exc}", path=str(path)) from exc
        logger.debug("Wrote %s (%d bytes)", path, size)
        return path
