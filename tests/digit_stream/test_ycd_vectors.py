"""Decoding of stored π shards in the y-cruncher word layout."""

from __future__ import annotations

import io

import pytest

from PiScan.DigitStream.catalog import BlockDescriptor, BlockHeader, ResultSet
from PiScan.DigitStream.codec import YCD64
from PiScan.DigitStream.reader import DigitStreamReader, open_digit_stream
from PiScan.ObjectStore.memory import MemoryBucket

FIRST_DIGIT_OFFSET = 201

# First 16 words of decimal and hexadecimal π shards.
DEC_BYTES = bytes.fromhex(
    "60e23eb8ae61a613236657f68466ef562e09171ebfd27e638e22a231fea81683"
    "43e129bc73f47c0c82be7fdf5084166291642358124b8e2a3010806bda931e72"
    "72d319e61cfb810ff123fda274635148495ca1e422313b4c001e7e297370a14e"
    "53fe780568c67120b20c343fe42fb10c918f9706977a7e77ddeccebaca374654"
)
DEC_EXPECTED = (
    b"1415926535897932384626433832795028841971693993751058209749445923078164062862"
    b"0899862803482534211706798214808651328230664709384460955058223172535940812848"
    b"1117450284102701938521105559644622948954930381964428810975665933446128475648"
    b"2337867831652712019091456485669234603486104543266482133936072602491412737245"
)

HEX_BYTES = bytes.fromhex(
    "d308a385886a3f24447370032e8a1913d0319f29223809a4896c4eec98fa2e08"
    "7713d038e62128456c0ce934cf6654bedd507cc9b729acc0170947b5b5d5843f"
    "1bfb7989d9d51692acb5df98a60b31d1b7df1ad0db72fd2f967e266aedafe1b8"
    "997f2cf145907cbaf76c91b34799a12416fc8e85e2f20108694e5771d8206963"
)
HEX_EXPECTED = (
    b"243f6a8885a308d313198a2e03707344a4093822299f31d0082efa98ec4e6c89"
    b"452821e638d01377be5466cf34e90c6cc0ac29b7c97c50dd3f84d5b5b5470917"
    b"9216d5d98979fb1bd1310ba698dfb5ac2ffd72dbd01adfb7b8e1afed6a267e96"
    b"ba7c9045f12c7f9924a19947b3916cf70801f2e2858efc16636920d871574e69"
)

# Four blocks of 30 digits, two words each; the catalog ends at digit 100, so
# only the first word of the last block is read and its second word is filler.
MULTI_BLOCK_BYTES = bytes.fromhex(
    "60e23eb8ae61a613000f58f38466ef56173f651a2109ca4500605b4a96061408"
    "09fbd6593500335200e9e50f83b7df8800e6c63d9b707a2f0000000000000000"
)


def _single_block(payload: bytes, radix: int, digits: int):
    name = "Pi - Dec - Chudnovsky/Pi - Dec - Chudnovsky - 0.ycd"
    rs = ResultSet(
        [
            BlockDescriptor(
                header=BlockHeader(
                    radix=radix, block_id=0, block_size=digits, payload_length=len(payload)
                ),
                object_name=name,
                first_digit_offset=FIRST_DIGIT_OFFSET,
            )
        ],
        word_format=YCD64,
    )
    bucket = MemoryBucket({name: b"\x00" * FIRST_DIGIT_OFFSET + payload})
    return rs, bucket


def _multi_block():
    blocks = []
    objects = {}
    for k in range(4):
        name = f"Pi - Dec - Chudnovsky/Pi - Dec - Chudnovsky - {k}.ycd"
        objects[name] = b"\x00" * FIRST_DIGIT_OFFSET + MULTI_BLOCK_BYTES[16 * k : 16 * (k + 1)]
        blocks.append(
            BlockDescriptor(
                header=BlockHeader(
                    radix=10,
                    block_id=k,
                    block_size=30,
                    total_digits=100 if k == 3 else 0,
                ),
                object_name=name,
                first_digit_offset=FIRST_DIGIT_OFFSET,
            )
        )
    return ResultSet(blocks, word_format=YCD64), MemoryBucket(objects)


@pytest.mark.parametrize(
    "payload,expected,radix",
    [(DEC_BYTES, DEC_EXPECTED, 10), (HEX_BYTES, HEX_EXPECTED, 16)],
    ids=["radix-10", "radix-16"],
)
def test_single_block_reads(payload, expected, radix):
    rs, bucket = _single_block(payload, radix, len(expected))
    dpw = rs.digits_per_word
    with open_digit_stream(rs, bucket) as reader:
        assert reader.readinto(bytearray()) == 0
        assert reader.buffered is None

        assert reader.read(dpw) == expected[:dpw]
        assert reader.read(1) == expected[dpw : dpw + 1]
        assert reader.read(1) == expected[dpw + 1 : dpw + 2]

        assert reader.seek(0, io.SEEK_SET) == 0
        assert reader.read_at(0, 10) == expected[:10]
        assert reader.read() == expected

        assert reader.seek(0) == 0
        assert reader.read(len(expected) + 5) == expected
        assert reader.read(1) == b""


def test_multi_block_with_authoritative_total():
    rs, bucket = _multi_block()
    assert rs.total_digits == 100
    with open_digit_stream(rs, bucket) as reader:
        assert reader.read_at(0, 100) == DEC_EXPECTED[:100]
        assert reader.read_at(0, 150) == DEC_EXPECTED[:100]
        assert reader.read() == DEC_EXPECTED[:100]
        assert reader.seek(0) == 0
        chunks = []
        while True:
            piece = reader.read(7)
            if not piece:
                break
            chunks.append(piece)
        assert b"".join(chunks) == DEC_EXPECTED[:100]


def test_multi_block_boundaries_single_digit_reads():
    rs, bucket = _multi_block()
    reader = DigitStreamReader(rs.open(bucket), rs)
    try:
        for offset in (18, 19, 29, 30, 59, 60, 89, 90, 99):
            reader.seek(offset)
            assert reader.read(1) == DEC_EXPECTED[offset : offset + 1]
            assert reader.read_at(offset, 1) == DEC_EXPECTED[offset : offset + 1]
    finally:
        reader.close()
