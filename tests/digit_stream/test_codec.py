"""Word codec: widths, padding, bulk decoding and corrupt words."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from PiScan.DigitStream.codec import (
    PACKED32,
    YCD64,
    decode_word,
    decode_words,
    digits_per_word,
    get_word_format,
)
from PiScan.DigitStream.errors import DecodeError


@pytest.mark.parametrize(
    "fmt,radix,expected",
    [(PACKED32, 10, 9), (PACKED32, 16, 8), (YCD64, 10, 19), (YCD64, 16, 16)],
)
def test_digits_per_word(fmt, radix, expected):
    assert digits_per_word(radix, fmt) == expected


def test_default_format_is_packed32():
    assert digits_per_word(10) == 9
    assert digits_per_word(16) == 8


def test_unsupported_radix_rejected():
    with pytest.raises(ValueError):
        digits_per_word(8)
    with pytest.raises(ValueError):
        decode_word(1, 2)


def test_decode_word_pads_leading_zeros():
    assert decode_word(42, 10) == b"000000042"
    assert decode_word(0, 10) == b"000000000"
    assert decode_word(0xAB, 16) == b"000000ab"
    assert decode_word(999_999_999, 10) == b"999999999"


def test_decode_word_ycd64_vectors():
    first = int.from_bytes(bytes.fromhex("60e23eb8ae61a613"), "little")
    assert decode_word(first, 10, YCD64) == b"1415926535897932384"
    first_hex = int.from_bytes(bytes.fromhex("d308a385886a3f24"), "little")
    assert decode_word(first_hex, 16, YCD64) == b"243f6a8885a308d3"


def test_decode_word_overflow_is_corrupt():
    with pytest.raises(DecodeError) as excinfo:
        decode_word(1_000_000_000, 10)
    assert excinfo.value.word == 1_000_000_000
    assert excinfo.value.radix == 10


def test_decode_words_concatenates_in_order():
    raw = (123).to_bytes(4, "big") + (456_789_012).to_bytes(4, "big")
    assert decode_words(raw, 10) == b"000000123456789012"
    assert decode_words(b"", 10) == b""


def test_decode_words_rejects_partial_word():
    with pytest.raises(DecodeError):
        decode_words(b"\x00\x00\x01", 10)


def test_decode_words_reports_corrupt_word():
    raw = (1).to_bytes(4, "big") + (0xFFFFFFFF).to_bytes(4, "big")
    with pytest.raises(DecodeError) as excinfo:
        decode_words(raw, 10)
    assert excinfo.value.word == 0xFFFFFFFF


def test_get_word_format():
    assert get_word_format("packed32") is PACKED32
    assert get_word_format("ycd64") is YCD64
    with pytest.raises(ValueError):
        get_word_format("ycd128")


@given(st.integers(min_value=0, max_value=999_999_999))
def test_decimal_word_round_trips_through_int(value):
    text = decode_word(value, 10)
    assert len(text) == 9
    assert int(text) == value


@given(st.integers(min_value=0, max_value=0xFFFFFFFF))
def test_hex_word_is_lowercase_and_fixed_width(value):
    text = decode_word(value, 16)
    assert len(text) == 8
    assert text == text.lower()
    assert int(text, 16) == value


@given(st.lists(st.integers(min_value=0, max_value=10**19 - 1), max_size=16))
def test_bulk_matches_single_word_decoding(values):
    raw = b"".join(v.to_bytes(8, "little") for v in values)
    assert decode_words(raw, 10, YCD64) == b"".join(decode_word(v, 10, YCD64) for v in values)
