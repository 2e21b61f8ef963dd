"""Post-processing of batch files into prime candidates.

A palindrome is a candidate when it is at least ``min_length`` digits long
and does not end in an even digit or ``5`` (so read as a number it may be
prime). Its *position* is 1-based in the digit API's numbering, where
position 0 is the leading ``3`` of π and position 1 the first digit after the
point: ``center_index - (length - 1) // 2 + 1``.

Candidates can optionally be checked against the public digit API, which
answers ``GET <api_url>?start=<pos>&numberOfDigits=<n>&radix=<r>`` with
``{"content": "<digits>"}``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .models import PalindromeRecord

__all__ = (
    "Candidate",
    "parse_line",
    "iter_records",
    "is_candidate",
    "candidate_position",
    "find_candidates",
    "DigitApiValidator",
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.pi.delivery/v1/pi"


@dataclass
class Candidate:
    position: int
    length: int
    text: str
    center_index: int
    validated: Optional[bool] = None


def parse_line(line: str) -> PalindromeRecord:
    """Parse one ``<chunk_start>, <center>, <text>, <length>`` line."""
    parts = [part.strip() for part in line.split(",")]
    if len(parts) != 4:
        raise ValueError(f"Malformed result line: {line!r}")
    chunk_start, center, text, length = parts
    return PalindromeRecord(
        chunk_start=int(chunk_start),
        center_index=int(center),
        text=text,
        length=int(length),
    )


def iter_records(directory: Path | str) -> Iterator[PalindromeRecord]:
    """Yield the records of every ``*.txt`` batch file under ``directory``."""
    for path in sorted(Path(directory).glob("*.txt")):
        with path.open("r", encoding="ascii") as handle:
            for number, line in enumerate(handle, 1):
                if not line.strip():
                    continue
                try:
                    yield parse_line(line)
                except ValueError as exc:
                    raise ValueError(f"{path}:{number}: {exc}") from exc


def is_candidate(
    record: PalindromeRecord, min_length: int = 25, excluded_last_digits: str = "024568"
) -> bool:
    return (
        record.length >= min_length
        and bool(record.text)
        and record.text[-1] not in excluded_last_digits
    )


def candidate_position(record: PalindromeRecord) -> int:
    return record.center_index - (record.length - 1) // 2 + 1


def find_candidates(
    records: Iterable[PalindromeRecord],
    *,
    min_length: int = 25,
    excluded_last_digits: str = "024568",
) -> List[Candidate]:
    """Filter ``records`` to candidates, longest first."""
    found = [
        Candidate(
            position=candidate_position(record),
            length=record.length,
            text=record.text,
            center_index=record.center_index,
        )
        for record in records
        if is_candidate(record, min_length, excluded_last_digits)
    ]
    found.sort(key=lambda c: (-c.length, c.position))
    return found


class DigitApiValidator:
    """Checks candidates against a remote digit API.

    Transport errors are retried three times with exponential backoff; HTTP
    error statuses raise :class:`httpx.HTTPStatusError`.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        *,
        radix: int = 10,
        client: Optional[httpx.Client] = None,
        max_attempts: int = 3,
        initial_backoff_s: float = 1.0,
    ) -> None:
        self.api_url = api_url
        self.radix = radix
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=httpx.Timeout(10.0, read=30.0))
        self.max_attempts = max_attempts
        self.initial_backoff_s = initial_backoff_s

    def fetch(self, position: int, length: int) -> str:
        params = {"start": position, "numberOfDigits": length, "radix": self.radix}
        policy = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_backoff_s, max=30),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        for attempt in policy:
            with attempt:
                response = self.client.get(self.api_url, params=params)
                response.raise_for_status()
        return str(response.json().get("content", ""))

    def validate(self, candidate: Candidate) -> bool:
        content = self.fetch(candidate.position, candidate.length)
        candidate.validated = content[: candidate.length] == candidate.text
        if not candidate.validated:
            logger.warning(
                f"Candidate at {candidate.position} does not match the digit API "
                f"(expected {candidate.text}, got {content[: candidate.length]})"
            )
        return candidate.validated

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "DigitApiValidator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
