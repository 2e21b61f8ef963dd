# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {"id": "pack-words", "name": "pack_words", "anchor": "function-pack-words", "kind": "function"},
#     {"id": "make-catalog", "name": "make_catalog", "anchor": "function-make-catalog", "kind": "function"},
#     {"id": "with-palindrome", "name": "with_palindrome", "anchor": "function-with-palindrome", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Adds ``src`` to ``sys.path`` and provides builders for small in-memory digit
catalogs: a digit string is packed into ``packed32`` words, split into blocks
and stored behind a per-object preamble in a :class:`MemoryBucket`.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from PiScan.DigitStream.catalog import BlockDescriptor, BlockHeader, ResultSet  # noqa: E402
from PiScan.DigitStream.codec import PACKED32, WordFormat  # noqa: E402
from PiScan.ObjectStore.memory import MemoryBucket  # noqa: E402

PREAMBLE = 64
PALINDROME = "12345678987654321"


def pack_words(digits: str, radix: int = 10, word_format: WordFormat = PACKED32) -> bytes:
    """Pack ``digits`` into words, zero-padding the final word on the right."""
    dpw = word_format.digits_per_word(radix)
    out = bytearray()
    for i in range(0, len(digits), dpw):
        chunk = digits[i : i + dpw].ljust(dpw, "0")
        value = int(chunk, radix)
        out += value.to_bytes(word_format.word_bytes, word_format.byteorder)
    return bytes(out)


def make_catalog(
    digits: str,
    block_sizes: Sequence[int],
    *,
    radix: int = 10,
    word_format: WordFormat = PACKED32,
    total_digits: int = 0,
    on_open: Optional[Callable[[str, int, int], None]] = None,
) -> Tuple[ResultSet, MemoryBucket]:
    """Store ``digits`` as blocks of ``block_sizes`` digits each."""
    objects = {}
    blocks = []
    pos = 0
    for block_id, size in enumerate(block_sizes):
        name = f"pi/block-{block_id}.bin"
        objects[name] = b"\xee" * PREAMBLE + pack_words(digits[pos : pos + size], radix, word_format)
        is_last = block_id == len(block_sizes) - 1
        blocks.append(
            BlockDescriptor(
                header=BlockHeader(
                    radix=radix,
                    block_id=block_id,
                    block_size=size,
                    total_digits=total_digits if is_last else 0,
                ),
                object_name=name,
                first_digit_offset=PREAMBLE,
            )
        )
        pos += size
    return ResultSet(blocks, word_format=word_format), MemoryBucket(objects, on_open=on_open)


PI_DIGITS = (
    "1415926535897932384626433832795028841971693993751058209749445923078164062862"
    "0899862803482534211706798214808651328230664709384460955058223172535940812848"
    "1117450284102701938521105559644622948954930381964428810975665933446128475648"
    "2337867831652712019091456485669234603486104543266482133936072602491412737245"
)


@pytest.fixture
def pi_digits() -> str:
    return PI_DIGITS


def with_palindrome(digits: str, at: int, palindrome: str = PALINDROME) -> str:
    """Overwrite ``digits`` with ``palindrome`` starting at index ``at``."""
    return digits[:at] + palindrome + digits[at + len(palindrome) :]
