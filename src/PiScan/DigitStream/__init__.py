# === NAVMAP v1 ===
# {
#   "module": "PiScan.DigitStream.__init__",
#   "purpose": "Packed-digit codec, block catalog and decoded digit readers.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Packed-digit codec, block catalog and random-access digit readers.

Typical use::

    from PiScan.DigitStream import load_manifest, open_digit_stream

    result_set = load_manifest("pi-dec.yaml")
    with open_digit_stream(result_set, bucket) as reader:
        reader.seek(1_000_000)
        digits = reader.read(100)
"""

from .cache import CachedReader, PageCache
from .catalog import (
    BlockDescriptor,
    BlockHeader,
    DecodedPosition,
    ResultSet,
    ResultSetReader,
)
from .codec import (
    DEFAULT_WORD_FORMAT,
    PACKED32,
    SUPPORTED_RADIXES,
    YCD64,
    WordFormat,
    decode_word,
    decode_words,
    digits_per_word,
    get_word_format,
)
from .errors import (
    CatalogError,
    DecodeError,
    DigitStreamError,
    OutOfRangeError,
    ShortReadError,
)
from .manifest import load_manifest, parse_manifest
from .reader import DigitStreamReader, open_digit_stream, read_exact

__all__ = [
    "BlockDescriptor",
    "BlockHeader",
    "CachedReader",
    "CatalogError",
    "DEFAULT_WORD_FORMAT",
    "DecodeError",
    "DecodedPosition",
    "DigitStreamError",
    "DigitStreamReader",
    "OutOfRangeError",
    "PACKED32",
    "PageCache",
    "ResultSet",
    "ResultSetReader",
    "SUPPORTED_RADIXES",
    "ShortReadError",
    "WordFormat",
    "YCD64",
    "decode_word",
    "decode_words",
    "digits_per_word",
    "get_word_format",
    "load_manifest",
    "open_digit_stream",
    "parse_manifest",
    "read_exact",
]
