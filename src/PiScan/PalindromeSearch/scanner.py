# === NAVMAP v1 ===
# {
#   "module": "PiScan.PalindromeSearch.scanner",
#   "purpose": "Expand-around-center scan for long odd-length palindromes",
#   "sections": [
#     {"id": "find-palindromes", "name": "find_palindromes", "anchor": "function-find-palindromes", "kind": "function"},
#     {"id": "scan-chunk", "name": "scan_chunk", "anchor": "function-scan-chunk", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Palindrome detection over a decoded chunk buffer.

Only odd-length palindromes are reported: every center is a single digit and
the match grows one digit on each side at a time. The scan is the plain
expand-around-center loop, ``O(n * r)`` in the worst case, which is fine for
digit streams where long matches are rare.

``safe_radius`` (``ps``) shrinks the range of centers to
``[ps, len(s) - 1 - ps)`` and starts every expansion at radius ``ps``: the
``ps`` digits on each side of a center are taken as already matched. With
``ps = 1`` (the pipeline default) the center itself is the only assumed match
and the scan is exact.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Tuple, Union

from .models import Chunk, PalindromeRecord

__all__ = ("find_palindromes", "scan_chunk", "MIN_RADIUS")

logger = logging.getLogger(__name__)

MIN_RADIUS = 9

Buffer = Union[str, bytes]


def find_palindromes(
    s: Buffer, safe_radius: int, min_radius: int = MIN_RADIUS
) -> Iterator[Tuple[int, int, str]]:
    """Yield ``(center, radius, text)`` for each qualifying center of ``s``.

    A center qualifies when its final radius ``r`` is at least ``min_radius``
    and the palindrome does not touch the first digit of the buffer
    (``center - r > 0``). ``text`` is ``s[center - r + 1 : center + r]`` and
    has length ``2 * r - 1``.
    """
    if safe_radius < 0:
        raise ValueError("safe_radius must be non-negative")
    if isinstance(s, (bytes, bytearray)):
        s = s.decode("ascii")
    n = len(s)
    for i in range(safe_radius, n - 1 - safe_radius):
        r = safe_radius
        while i - r >= 0 and i + r < n and s[i - r] == s[i + r]:
            r += 1
        if r >= min_radius and i - r > 0:
            yield i, r, s[i - r + 1 : i + r]


def scan_chunk(
    chunk: Chunk,
    digits: Buffer,
    safe_radius: int = 1,
    min_radius: int = MIN_RADIUS,
) -> List[PalindromeRecord]:
    """Scan one chunk buffer and keep the records whose center it owns."""
    records = []
    dropped = 0
    for i, _r, text in find_palindromes(digits, safe_radius, min_radius):
        center = chunk.start + i
        if not chunk.owns(center):
            dropped += 1
            continue
        records.append(
            PalindromeRecord(
                chunk_start=chunk.start,
                center_index=center,
                text=text,
                length=len(text),
            )
        )
    if dropped:
        logger.debug(
            "Dropped %d record(s) centered outside chunk %d's owned window", dropped, chunk.id
        )
    return records
