# === NAVMAP v1 ===
# {
#   "module": "PiScan.DigitStream.catalog",
#   "purpose": "Block descriptors, result sets and the composed raw-byte reader",
#   "sections": [
#     {"id": "blockheader", "name": "BlockHeader", "anchor": "class-blockheader", "kind": "class"},
#     {"id": "blockdescriptor", "name": "BlockDescriptor", "anchor": "class-blockdescriptor", "kind": "class"},
#     {"id": "decodedposition", "name": "DecodedPosition", "anchor": "class-decodedposition", "kind": "class"},
#     {"id": "resultset", "name": "ResultSet", "anchor": "class-resultset", "kind": "class"},
#     {"id": "resultsetreader", "name": "ResultSetReader", "anchor": "class-resultsetreader", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Block catalog and the raw-byte view over its shards.

A digit stream is stored as a sequence of blocks. Each block lives in its own
object, preceded by a per-object preamble that ends at ``first_digit_offset``.
A block of ``block_size`` digits occupies ``ceil(block_size / dpw)`` packed
words; only the leading digits of the final word are valid when the size is
not a multiple of the digits carried per word.

:class:`ResultSet` validates the descriptors, precomputes digit and byte
prefix sums, and maps a logical digit offset to its word
(:meth:`ResultSet.locate`). :class:`ResultSetReader` concatenates the packed
payloads of all blocks into one seekable raw stream that opens ranged reads
lazily and holds at most one open handle at a time.

Responsibilities
----------------
- Validate ordering, radix and sizes of block descriptors.
- Resolve digit offsets and raw byte offsets by bisection over prefix sums.
- Serve sequential reads across block boundaries and cursor-free
  :meth:`ResultSetReader.read_at` lookups.
- Surface short payloads as :class:`ShortReadError` instead of padding.
"""

from __future__ import annotations

import io
import logging
from bisect import bisect_right
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Iterable, Iterator, Optional, Sequence, overload

from .codec import DEFAULT_WORD_FORMAT, SUPPORTED_RADIXES, WordFormat
from .errors import CatalogError, OutOfRangeError, ShortReadError

if TYPE_CHECKING:
    from PiScan.ObjectStore.base import Bucket

__all__ = (
    "BlockHeader",
    "BlockDescriptor",
    "DecodedPosition",
    "ResultSet",
    "ResultSetReader",
    "read_fully",
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockHeader:
    """Header fields of one stored shard."""

    radix: int
    block_id: int
    block_size: int
    payload_length: int = 0
    total_digits: int = 0


@dataclass(frozen=True)
class BlockDescriptor:
    """Where a block lives and where its packed payload starts."""

    header: BlockHeader
    object_name: str
    first_digit_offset: int


@dataclass(frozen=True)
class DecodedPosition:
    """Location of a digit inside the packed payload.

    Attributes:
        block_index: Index of the block holding the digit.
        word_index: Word index relative to the start of that block.
        digit_in_word: Position of the digit inside its word.
        word_digit_start: Absolute digit offset of the word's first digit.
        raw_offset: Offset of the word in the composed raw stream.
    """

    block_index: int
    word_index: int
    digit_in_word: int
    word_digit_start: int
    raw_offset: int


def read_fully(stream: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, looping over short reads until EOF."""
    buf = bytearray(size)
    view = memoryview(buf)
    filled = 0
    while filled < size:
        n = stream.readinto(view[filled:])
        if not n:
            break
        filled += n
    del view
    if filled < size:
        del buf[filled:]
    return bytes(buf)


class ResultSet(Sequence[BlockDescriptor]):
    """Immutable, ordered catalog of blocks covering ``[0, total_digits)``."""

    def __init__(
        self,
        blocks: Iterable[BlockDescriptor],
        word_format: WordFormat = DEFAULT_WORD_FORMAT,
    ) -> None:
        self._blocks: tuple[BlockDescriptor, ...] = tuple(blocks)
        self.word_format = word_format
        if not self._blocks:
            raise CatalogError("A result set needs at least one block")

        radix = self._blocks[0].header.radix
        if radix not in SUPPORTED_RADIXES:
            raise CatalogError(f"Unsupported radix {radix}")
        self.radix = radix
        self.digits_per_word = word_format.digits_per_word(radix)
        word_bytes = word_format.word_bytes

        digit_starts = [0]
        byte_starts = [0]
        declared_total = 0
        previous_id: Optional[int] = None
        for desc in self._blocks:
            header = desc.header
            if header.radix != radix:
                raise CatalogError(
                    f"Block {header.block_id} has radix {header.radix}, expected {radix}"
                )
            if previous_id is not None and header.block_id <= previous_id:
                raise CatalogError(
                    f"Blocks out of order: {header.block_id} follows {previous_id}"
                )
            if header.block_size <= 0:
                raise CatalogError(f"Block {header.block_id} has no digits")
            if desc.first_digit_offset < 0:
                raise CatalogError(f"Block {header.block_id} has a negative payload offset")
            words = -(-header.block_size // self.digits_per_word)
            size = words * word_bytes
            if header.payload_length and header.payload_length < size:
                raise CatalogError(
                    f"Block {header.block_id} declares {header.payload_length} payload bytes, "
                    f"needs {size}"
                )
            if header.total_digits:
                declared_total = max(declared_total, header.total_digits)
            previous_id = header.block_id
            digit_starts.append(digit_starts[-1] + header.block_size)
            byte_starts.append(byte_starts[-1] + size)

        stored = digit_starts[-1]
        if declared_total > stored:
            raise CatalogError(
                f"Catalog declares {declared_total} digits but blocks hold only {stored}"
            )
        self.total_digits = declared_total or stored
        self.raw_size = byte_starts[-1]
        self._digit_starts = tuple(digit_starts)
        self._byte_starts = tuple(byte_starts)

    def __len__(self) -> int:
        return len(self._blocks)

    @overload
    def __getitem__(self, index: int) -> BlockDescriptor: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[BlockDescriptor]: ...

    def __getitem__(self, index):
        return self._blocks[index]

    def __iter__(self) -> Iterator[BlockDescriptor]:
        return iter(self._blocks)

    def __repr__(self) -> str:
        return (
            f"ResultSet(blocks={len(self._blocks)}, radix={self.radix}, "
            f"total_digits={self.total_digits}, word_format={self.word_format.name!r})"
        )

    # -- prefix sums --------------------------------------------------------

    def digit_start(self, index: int) -> int:
        return self._digit_starts[index]

    def digit_end(self, index: int) -> int:
        """First digit past block ``index``, clamped to ``total_digits``."""
        return min(self._digit_starts[index + 1], self.total_digits)

    def byte_start(self, index: int) -> int:
        return self._byte_starts[index]

    def byte_end(self, index: int) -> int:
        return self._byte_starts[index + 1]

    def block_for_digit(self, offset: int) -> int:
        if offset < 0 or offset >= self.total_digits:
            raise OutOfRangeError(
                f"Digit offset {offset} outside [0, {self.total_digits})",
                offset=offset,
                limit=self.total_digits,
            )
        return bisect_right(self._digit_starts, offset) - 1

    def block_for_raw(self, offset: int) -> int:
        if offset < 0 or offset >= self.raw_size:
            raise OutOfRangeError(
                f"Raw offset {offset} outside [0, {self.raw_size})",
                offset=offset,
                limit=self.raw_size,
            )
        return bisect_right(self._byte_starts, offset) - 1

    def locate(self, offset: int) -> DecodedPosition:
        """Map a digit offset to its word and raw byte offset."""
        block = self.block_for_digit(offset)
        relative = offset - self._digit_starts[block]
        word_index, digit_in_word = divmod(relative, self.digits_per_word)
        return DecodedPosition(
            block_index=block,
            word_index=word_index,
            digit_in_word=digit_in_word,
            word_digit_start=offset - digit_in_word,
            raw_offset=self._byte_starts[block] + word_index * self.word_format.word_bytes,
        )

    def open(self, bucket: "Bucket") -> "ResultSetReader":
        """Return a raw reader over the packed payloads of all blocks."""
        return ResultSetReader(self, bucket)


class ResultSetReader(io.RawIOBase):
    """Seekable raw-byte stream over the concatenated block payloads.

    The reader owns at most one ranged-read handle, for the block under the
    sequential cursor. :meth:`read_at` opens and closes its own handles and
    never touches the cursor or the open handle.
    """

    def __init__(self, result_set: ResultSet, bucket: "Bucket") -> None:
        super().__init__()
        self.result_set = result_set
        self._bucket = bucket
        self._pos = 0
        self._handle: Optional[BinaryIO] = None

    @property
    def size(self) -> int:
        return self.result_set.raw_size

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
            target = self.size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if target < 0 or target > self.size:
            raise OutOfRangeError(
                f"Cannot seek to raw offset {target} outside [0, {self.size}]",
                offset=target,
                limit=self.size,
            )
        if target != self._pos:
            self._release()
            self._pos = target
        return self._pos

    def _open_block(self, index: int, within: int, length: int) -> BinaryIO:
        desc = self.result_set[index]
        logger.debug(
            "Opening ranged read",
            extra={
                "object": desc.object_name,
                "offset": desc.first_digit_offset + within,
                "length": length,
            },
        )
        return self._bucket.object(desc.object_name).open_range(
            desc.first_digit_offset + within, length
        )

    def _release(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            handle.close()

    def readinto(self, b) -> int:
        self._checkClosed()
        if len(b) == 0 or self._pos >= self.size:
            return 0
        rs = self.result_set
        index = rs.block_for_raw(self._pos)
        start, end = rs.byte_start(index), rs.byte_end(index)
        if self._handle is None:
            self._handle = self._open_block(index, self._pos - start, end - self._pos)
        want = min(len(b), end - self._pos)
        n = self._handle.readinto(memoryview(b)[:want])
        if not n:
            name = rs[index].object_name
            self._release()
            raise ShortReadError(
                f"{name} ended {end - self._pos} bytes before the end of block "
                f"{rs[index].header.block_id}",
                object_name=name,
                expected=end - start,
                received=self._pos - start,
            )
        self._pos += n
        if self._pos >= end:
            self._release()
        return n

    def read_at(self, offset: int, size: int) -> bytes:
        """Read ``size`` bytes at raw ``offset`` without moving the cursor.

        Returns fewer bytes only when the range runs past the end of the
        catalog.
        """
        self._checkClosed()
        if offset < 0 or offset > self.size:
            raise OutOfRangeError(
                f"Raw offset {offset} outside [0, {self.size}]",
                offset=offset,
                limit=self.size,
            )
        if size < 0:
            raise ValueError("size must be non-negative")
        rs = self.result_set
        end = min(offset + size, self.size)
        parts = []
        pos = offset
        while pos < end:
            index = rs.block_for_raw(pos)
            start = rs.byte_start(index)
            length = min(end, rs.byte_end(index)) - pos
            with self._open_block(index, pos - start, length) as handle:
                data = read_fully(handle, length)
            if len(data) < length:
                name = rs[index].object_name
                raise ShortReadError(
                    f"{name} returned {len(data)} of {length} bytes at payload offset "
                    f"{pos - start}",
                    object_name=name,
                    expected=length,
                    received=len(data),
                )
            parts.append(data)
            pos += length
        return b"".join(parts)

    def close(self) -> None:
        if not self.closed:
            try:
                self._release()
            finally:
                super().close()
