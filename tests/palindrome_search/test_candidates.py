"""Candidate filtering and validation against the digit API."""

from __future__ import annotations

import httpx
import pytest

from PiScan.PalindromeSearch.candidates import (
    DigitApiValidator,
    candidate_position,
    find_candidates,
    is_candidate,
    iter_records,
    parse_line,
)
from PiScan.PalindromeSearch.models import PalindromeRecord

LONG_PALINDROME = "7" + "1234567890123" + "4" + "3210987654321" + "7"


def _record(center: int, text: str) -> PalindromeRecord:
    return PalindromeRecord(chunk_start=0, center_index=center, text=text, length=len(text))


def test_parse_line_round_trips_batch_format():
    record = _record(1010, LONG_PALINDROME)
    assert parse_line(record.format_line()) == record


@pytest.mark.parametrize("line", ["1, 2, 3", "a, 2, 33, 2", "1, 2, 3, 4, 5"])
def test_parse_line_rejects_malformed(line):
    with pytest.raises(ValueError):
        parse_line(line)


def test_iter_records_reads_all_batch_files(tmp_path):
    (tmp_path / "batch-0.txt").write_text("0, 15, 12345678987654321, 17\n\n")
    (tmp_path / "batch-100.txt").write_text(f"98, 150, {LONG_PALINDROME}, 29\n")
    (tmp_path / "notes.md").write_text("ignored")

    records = list(iter_records(tmp_path))
    assert [r.center_index for r in records] == [15, 150]


def test_iter_records_reports_file_and_line(tmp_path):
    (tmp_path / "batch-0.txt").write_text("0, 15, 12345678987654321, 17\nbroken\n")
    with pytest.raises(ValueError, match=r"batch-0.txt:2"):
        list(iter_records(tmp_path))


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (LONG_PALINDROME, True),
        ("1" * 25, True),
        ("3" * 24, False),
        ("5" + "1" * 23 + "5", False),
        ("4" * 27, False),
        ("9" * 31, True),
    ],
)
def test_is_candidate(text, expected):
    assert is_candidate(_record(1000, text)) is expected


def test_candidate_position_is_one_based_digit_after_point():
    # "1415926535..." : the digit at index 0 is position 1
    assert candidate_position(_record(center=14, text="1" * 29)) == 1
    assert candidate_position(_record(center=93, text="1" * 27)) == 81


def test_find_candidates_longest_first():
    found = find_candidates(
        [
            _record(500, "1" * 25),
            _record(100, "3" * 27),
            _record(50, "1" * 25),
            _record(900, "2" * 40),
        ]
    )
    assert [(c.length, c.position) for c in found] == [(27, 88), (25, 39), (25, 489)]
    assert all(c.validated is None for c in found)


def test_find_candidates_respects_thresholds():
    records = [_record(500, "1" * 17), _record(600, "0" + "1" * 15 + "0")]
    found = find_candidates(records, min_length=17, excluded_last_digits="")
    assert len(found) == 2


def test_validator_queries_digit_api():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(200, json={"content": LONG_PALINDROME + "99"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    validator = DigitApiValidator("https://api.example.org/v1/pi", client=client)
    (candidate,) = find_candidates([_record(1014, LONG_PALINDROME)])

    assert validator.validate(candidate) is True
    assert candidate.validated is True
    assert seen == [{"start": "1001", "numberOfDigits": "29", "radix": "10"}]


def test_validator_flags_mismatch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"content": "0" * 29})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    with DigitApiValidator(client=client, radix=16) as validator:
        (candidate,) = find_candidates([_record(1014, LONG_PALINDROME)])
        assert validator.validate(candidate) is False
    assert candidate.validated is False
    assert not client.is_closed


def test_validator_retries_transport_errors():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"content": "141"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    validator = DigitApiValidator(client=client, initial_backoff_s=0)
    assert validator.fetch(1, 3) == "141"
    assert calls["n"] == 3


def test_validator_raises_on_http_errors():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(500)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    validator = DigitApiValidator(client=client, initial_backoff_s=0)
    with pytest.raises(httpx.HTTPStatusError):
        validator.fetch(1, 3)
    assert calls["n"] == 1
