"""Expand-around-center scanning and owned-window filtering."""

from __future__ import annotations

import pytest

from conftest import PALINDROME, PI_DIGITS, with_palindrome
from PiScan.PalindromeSearch.models import Chunk, PalindromeRecord
from PiScan.PalindromeSearch.orchestrator import plan_chunks
from PiScan.PalindromeSearch.scanner import find_palindromes, scan_chunk


def test_short_palindromes_are_ignored():
    assert list(find_palindromes("12321", 1)) == []
    assert list(find_palindromes("9876543212345678", 1)) == []


def test_reports_maximal_palindrome_with_center_and_radius():
    s = "55" + PALINDROME + "00"
    assert list(find_palindromes(s, 1)) == [(10, 9, PALINDROME)]


def test_accepts_bytes():
    s = ("55" + PALINDROME + "00").encode("ascii")
    assert [text for _, _, text in find_palindromes(s, 1)] == [PALINDROME]


def test_lower_min_radius_reports_more_centers():
    s = "55" + "1234321" + "00"
    assert list(find_palindromes(s, 1, min_radius=4)) == [(5, 4, "1234321")]


@pytest.mark.parametrize("prefix", ["", "5"])
def test_palindrome_touching_buffer_head_is_not_reported(prefix):
    s = prefix + PALINDROME + "00"
    assert list(find_palindromes(s, 1)) == []


def test_palindrome_reaching_buffer_tail_stops_at_the_edge():
    s = "55" + PALINDROME
    assert list(find_palindromes(s, 1)) == [(10, 9, PALINDROME)]
    assert list(find_palindromes(s[:-1], 1)) == []


def test_safe_radius_skips_comparisons_and_narrows_centers():
    s = "55" + "1234567" + "a9b" + "7654321" + "00"
    assert list(find_palindromes(s, 1)) == []
    # with ps = 2 the digits next to the center are assumed to match
    assert list(find_palindromes(s, 2)) == [(10, 9, "1234567a9b7654321")]


def test_zero_safe_radius_scans_every_center():
    assert list(find_palindromes("12321", 0)) == []
    s = "55" + PALINDROME + "00"
    assert list(find_palindromes(s, 0)) == [(10, 9, PALINDROME)]
    assert list(find_palindromes(s, 0)) == list(find_palindromes(s, 1))


def test_zero_safe_radius_still_drops_palindromes_at_buffer_head():
    assert list(find_palindromes(PALINDROME + "00", 0)) == []
    assert list(find_palindromes("5" + PALINDROME + "00", 0)) == []
    assert list(find_palindromes("55" + PALINDROME, 0)) == [(10, 9, PALINDROME)]


def test_negative_safe_radius_rejected():
    with pytest.raises(ValueError):
        list(find_palindromes("123", -1))


def test_records_are_formatted_as_batch_lines():
    digits = "55" + PALINDROME + "00"
    chunk = Chunk(start=1000, length=len(digits), id=1000, owned_start=1000, owned_end=1021)
    records = scan_chunk(chunk, digits)
    assert records == [
        PalindromeRecord(chunk_start=1000, center_index=1010, text=PALINDROME, length=17)
    ]
    assert records[0].format_line() == f"1000, 1010, {PALINDROME}, 17\n"


def test_palindrome_in_overlap_is_reported_by_one_chunk_only():
    digits = with_palindrome(PI_DIGITS[:80], 22)
    first, second = list(plan_chunks(80, 40, overlap=20, extend=True))
    assert (first.start, first.end, first.owned_end) == (0, 40, 30)
    assert (second.start, second.end, second.owned_start) == (20, 80, 30)

    raw_first = list(find_palindromes(digits[first.start : first.end], 1))
    raw_second = list(find_palindromes(digits[second.start : second.end], 1))
    assert [text for _, _, text in raw_first] == [PALINDROME]
    assert [text for _, _, text in raw_second] == [PALINDROME]

    assert scan_chunk(first, digits[first.start : first.end]) == []
    (record,) = scan_chunk(second, digits[second.start : second.end])
    assert (record.chunk_start, record.center_index) == (20, 30)
