# === NAVMAP v1 ===
# {
#   "module": "PiScan.DigitStream.codec",
#   "purpose": "Fixed-width packed word to ASCII digit conversion",
#   "sections": [
#     {"id": "wordformat", "name": "WordFormat", "anchor": "class-wordformat", "kind": "class"},
#     {"id": "digits-per-word", "name": "digits_per_word", "anchor": "function-digits-per-word", "kind": "function"},
#     {"id": "decode-word", "name": "decode_word", "anchor": "function-decode-word", "kind": "function"},
#     {"id": "decode-words", "name": "decode_words", "anchor": "function-decode-words", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Packed-word codec for digit shards.

Each stored word is an unsigned integer that encodes a fixed number of
consecutive digits, most significant digit first. Decoding renders the integer
in the shard's radix and left-pads it with ``0`` to the fixed width, so the
digit ``0`` at the start of a word is never lost.

Two on-disk layouts are supported:

- ``packed32``: 4-byte big-endian words, 9 decimal or 8 hexadecimal digits.
- ``ycd64``: 8-byte little-endian words, 19 decimal or 16 hexadecimal digits
  (the y-cruncher ``.ycd`` layout).

Decoding runs once per word across the whole corpus, so the bulk path
(:func:`decode_words`) unpacks with a precompiled :class:`struct.Struct` and
formats with a cached ``%``-template instead of building digits one by one.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Dict, Mapping

from .errors import DecodeError

__all__ = (
    "SUPPORTED_RADIXES",
    "WordFormat",
    "PACKED32",
    "YCD64",
    "DEFAULT_WORD_FORMAT",
    "WORD_FORMATS",
    "digits_per_word",
    "decode_word",
    "decode_words",
    "get_word_format",
)

SUPPORTED_RADIXES = (10, 16)

_TEMPLATE_CHAR = {10: "d", 16: "x"}


@dataclass(frozen=True)
class WordFormat:
    """Physical layout of a packed word."""

    name: str
    word_bytes: int
    byteorder: str
    digits: Mapping[int, int]
    _struct: struct.Struct = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        codes = {4: "I", 8: "Q"}
        if self.word_bytes not in codes:
            raise ValueError(f"Unsupported word width: {self.word_bytes} bytes")
        prefix = ">" if self.byteorder == "big" else "<"
        object.__setattr__(self, "_struct", struct.Struct(prefix + codes[self.word_bytes]))

    def digits_per_word(self, radix: int) -> int:
        try:
            return self.digits[radix]
        except KeyError:
            raise ValueError(
                f"Unsupported radix {radix}; expected one of {SUPPORTED_RADIXES}"
            ) from None

    def unpack(self, raw: bytes) -> int:
        """Return the integer value of a single packed word."""
        return self._struct.unpack(raw)[0]

    def iter_unpack(self, raw: bytes):
        return (item[0] for item in self._struct.iter_unpack(raw))


PACKED32 = WordFormat(name="packed32", word_bytes=4, byteorder="big", digits={10: 9, 16: 8})
YCD64 = WordFormat(name="ycd64", word_bytes=8, byteorder="little", digits={10: 19, 16: 16})
DEFAULT_WORD_FORMAT = PACKED32

WORD_FORMATS: Dict[str, WordFormat] = {fmt.name: fmt for fmt in (PACKED32, YCD64)}

_TEMPLATES: Dict[tuple[int, int], bytes] = {}


def get_word_format(name: str) -> WordFormat:
    """Look up a word format by its configuration name."""
    try:
        return WORD_FORMATS[name]
    except KeyError:
        raise ValueError(
            f"Unknown word format {name!r}; expected one of {sorted(WORD_FORMATS)}"
        ) from None


def digits_per_word(radix: int, word_format: WordFormat = DEFAULT_WORD_FORMAT) -> int:
    """Return how many digits a single word of ``word_format`` carries."""
    return word_format.digits_per_word(radix)


def _template(radix: int, width: int) -> bytes:
    key = (radix, width)
    template = _TEMPLATES.get(key)
    if template is None:
        template = f"%0{width}{_TEMPLATE_CHAR[radix]}".encode("ascii")
        _TEMPLATES[key] = template
    return template


def decode_word(word: int, radix: int, word_format: WordFormat = DEFAULT_WORD_FORMAT) -> bytes:
    """Decode one packed word into exactly ``digits_per_word`` ASCII digits.

    Args:
        word: Unsigned word value as read from storage.
        radix: 10 or 16.
        word_format: Layout the word was read with.

    Returns:
        Zero-padded digits, e.g. ``b"000000042"`` for ``42`` in ``packed32``.

    Raises:
        DecodeError: If the value needs more digits than the word carries.
    """
    width = word_format.digits_per_word(radix)
    text = _template(radix, width) % word
    if len(text) != width:
        raise DecodeError(
            f"Word {word} does not fit in {width} base-{radix} digits",
            word=word,
            radix=radix,
        )
    return text


def decode_words(raw: bytes, radix: int, word_format: WordFormat = DEFAULT_WORD_FORMAT) -> bytes:
    """Decode a run of packed words into their concatenated digits."""
    if len(raw) % word_format.word_bytes:
        raise DecodeError(
            f"Payload of {len(raw)} bytes is not a whole number of "
            f"{word_format.word_bytes}-byte words",
            radix=radix,
        )
    width = word_format.digits_per_word(radix)
    template = _template(radix, width)
    words = list(word_format.iter_unpack(raw))
    if not words:
        return b""
    digits = (template * len(words)) % tuple(words)
    if len(digits) != width * len(words):
        # Locate the offending word for the error message.
        for word in words:
            decode_word(word, radix, word_format)
    return digits
