# === NAVMAP v1 ===
# {
#   "module": "PiScan.DigitStream.reader",
#   "purpose": "Seekable decoded-digit stream over packed catalog payloads",
#   "sections": [
#     {"id": "digitstreamreader", "name": "DigitStreamReader", "anchor": "class-digitstreamreader", "kind": "class"},
#     {"id": "read-exact", "name": "read_exact", "anchor": "function-read-exact", "kind": "function"},
#     {"id": "open-digit-stream", "name": "open_digit_stream", "anchor": "function-open-digit-stream", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Random-access stream of decoded digits.

:class:`DigitStreamReader` turns the raw packed bytes served by a
:class:`~PiScan.DigitStream.catalog.ResultSetReader` (optionally behind a
:class:`~PiScan.DigitStream.cache.CachedReader`) into ASCII digits.

Decoding is lazy. The reader keeps one decoded run of words and the digit
offset it starts at. When the cursor leaves that run it locates the word
holding the cursor, seeks the raw reader to it, reads the whole words the
current request still needs (never past the end of the block, and at most
``max_fill_words``), decodes them and continues copying. A one-byte read
therefore decodes exactly one word, while bulk reads decode in large batches.

States
------
- *uninitialised*: no run buffered (new reader, or after a seek outside it);
- *buffered*: ``[buffer_start, buffer_end)`` decoded and ready;
- *closed*: the raw reader is closed and every operation raises ``ValueError``.

:meth:`DigitStreamReader.read_at` decodes through the raw reader's own
``read_at`` and never touches the cursor or the buffered run.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple

from .cache import CachedReader, PageCache
from .catalog import ResultSet, read_fully
from .codec import decode_words
from .errors import OutOfRangeError, ShortReadError

if TYPE_CHECKING:
    from PiScan.ObjectStore.base import Bucket

__all__ = ("DigitStreamReader", "read_exact", "open_digit_stream", "DEFAULT_FILL_WORDS")

logger = logging.getLogger(__name__)

DEFAULT_FILL_WORDS = 1 << 13

Fetch = Callable[[int, int], bytes]


class DigitStreamReader(io.RawIOBase):
    """Decoded digit view over a raw catalog reader.

    Args:
        raw: Raw reader over the catalog's packed payload.
        result_set: Catalog the raw reader was opened on.
        max_fill_words: Upper bound on words decoded per refill.
    """

    def __init__(
        self,
        raw: Any,
        result_set: ResultSet,
        *,
        max_fill_words: int = DEFAULT_FILL_WORDS,
    ) -> None:
        super().__init__()
        if max_fill_words <= 0:
            raise ValueError("max_fill_words must be > 0")
        self._raw = raw
        self.result_set = result_set
        self.max_fill_words = max_fill_words
        self._pos = 0
        self._buf = b""
        self._buf_start = 0

    @property
    def total_digits(self) -> int:
        return self.result_set.total_digits

    @property
    def radix(self) -> int:
        return self.result_set.radix

    @property
    def buffered(self) -> Optional[Tuple[int, int]]:
        """Digit range of the decoded run, or ``None`` when nothing is buffered."""
        if not self._buf:
            return None
        return self._buf_start, self._buf_start + len(self._buf)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._checkClosed()
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._checkClosed()
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self.total_digits + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if target < 0 or target > self.total_digits:
            raise OutOfRangeError(
                f"Cannot seek to digit {target} outside [0, {self.total_digits}]",
                offset=target,
                limit=self.total_digits,
            )
        if self._buf and not (self._buf_start <= target < self._buf_start + len(self._buf)):
            self._buf = b""
        self._pos = target
        return self._pos

    def _fetch_sequential(self, raw_offset: int, size: int) -> bytes:
        if self._raw.tell() != raw_offset:
            self._raw.seek(raw_offset)
        return read_fully(self._raw, size)

    def _decode_span(self, pos: int, end: int, fetch: Fetch) -> Tuple[int, bytes]:
        """Decode the words covering ``[pos, end)`` within pos's block.

        Returns the absolute digit offset of the first decoded digit and the
        digits themselves, truncated at the end of the block.
        """
        rs = self.result_set
        loc = rs.locate(pos)
        block_end = rs.digit_end(loc.block_index)
        stop = min(end, block_end)
        dpw = rs.digits_per_word
        words = -(-(stop - loc.word_digit_start) // dpw)
        words = max(1, min(words, self.max_fill_words))
        size = words * rs.word_format.word_bytes
        raw = fetch(loc.raw_offset, size)
        if len(raw) < size:
            desc = rs[loc.block_index]
            raise ShortReadError(
                f"Expected {size} payload bytes at raw offset {loc.raw_offset}, got {len(raw)}",
                object_name=desc.object_name,
                expected=size,
                received=len(raw),
            )
        digits = decode_words(raw, rs.radix, rs.word_format)
        return loc.word_digit_start, digits[: block_end - loc.word_digit_start]

    def readinto(self, b) -> int:
        self._checkClosed()
        want = len(b)
        if want == 0:
            return 0
        total = self.total_digits
        view = memoryview(b).cast("B")
        n = 0
        while n < want and self._pos < total:
            rel = self._pos - self._buf_start
            if not self._buf or rel < 0 or rel >= len(self._buf):
                self._buf_start, self._buf = self._decode_span(
                    self._pos, self._pos + (want - n), self._fetch_sequential
                )
                rel = self._pos - self._buf_start
            take = min(want - n, len(self._buf) - rel)
            view[n : n + take] = self._buf[rel : rel + take]
            n += take
            self._pos += take
        return n

    def read_at(self, offset: int, size: int) -> bytes:
        """Return the digits in ``[offset, offset + size)``.

        The result is shorter than ``size`` only when the range runs past
        ``total_digits``.
        """
        self._checkClosed()
        total = self.total_digits
        if offset < 0 or offset > total:
            raise OutOfRangeError(
                f"Digit offset {offset} outside [0, {total}]", offset=offset, limit=total
            )
        if size < 0:
            raise ValueError("size must be non-negative")
        end = min(offset + size, total)
        parts = []
        pos = offset
        while pos < end:
            start, digits = self._decode_span(pos, end, self._raw.read_at)
            rel = pos - start
            take = min(end - pos, len(digits) - rel)
            parts.append(digits[rel : rel + take])
            pos += take
        return b"".join(parts)

    def close(self) -> None:
        if not self.closed:
            try:
                self._raw.close()
            finally:
                self._buf = b""
                super().close()


def read_exact(reader: io.RawIOBase, size: int) -> bytes:
    """Read exactly ``size`` digits from the cursor of ``reader``.

    Raises:
        OutOfRangeError: If the stream ends first.
    """
    data = read_fully(reader, size)
    if len(data) < size:
        raise OutOfRangeError(
            f"Stream ended after {len(data)} of {size} requested digits",
            offset=reader.tell(),
            limit=size,
        )
    return data


def open_digit_stream(
    result_set: ResultSet,
    bucket: "Bucket",
    *,
    cache: Optional[PageCache] = None,
    max_fill_words: int = DEFAULT_FILL_WORDS,
) -> DigitStreamReader:
    """Open a catalog reader on ``bucket`` and wrap it for decoding."""
    raw: Any = result_set.open(bucket)
    if cache is not None:
        raw = CachedReader(raw, cache)
    return DigitStreamReader(raw, result_set, max_fill_words=max_fill_words)
