"""Fetch retry policy."""

from __future__ import annotations

import threading

import pytest

from PiScan.DigitStream.errors import OutOfRangeError, ShortReadError
from PiScan.ObjectStore.base import ObjectNotFoundError, StorageError, TransientStorageError
from PiScan.PalindromeSearch.retry import create_fetch_retry_policy, is_retryable


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (TransientStorageError("503"), True),
        (ObjectNotFoundError("gone"), False),
        (StorageError("403", status=403), False),
        (ConnectionResetError(), True),
        (TimeoutError(), True),
        (ShortReadError("short"), False),
        (OutOfRangeError("past end"), False),
        (ValueError("bad"), False),
    ],
)
def test_is_retryable(exc, expected):
    assert is_retryable(exc) is expected


def _run(policy, func):
    for attempt in policy:
        with attempt:
            return func()


class Flaky:
    def __init__(self, failures: int, exc: Exception):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return b"digits"


def test_retries_io_errors_until_success():
    retries = []
    policy = create_fetch_retry_policy(
        cancel_event=threading.Event(),
        initial_backoff_s=0,
        max_backoff_s=0,
        on_retry=retries.append,
    )
    flaky = Flaky(2, TransientStorageError("429"))
    assert _run(policy, flaky) == b"digits"
    assert flaky.calls == 3
    assert len(retries) == 2


def test_gives_up_after_max_attempts_with_original_error():
    policy = create_fetch_retry_policy(
        cancel_event=threading.Event(), max_attempts=3, initial_backoff_s=0, max_backoff_s=0
    )
    flaky = Flaky(5, TransientStorageError("503"))
    with pytest.raises(TransientStorageError):
        _run(policy, flaky)
    assert flaky.calls == 3


def test_data_errors_are_not_retried():
    policy = create_fetch_retry_policy(cancel_event=threading.Event(), initial_backoff_s=0)
    flaky = Flaky(1, OutOfRangeError("past end"))
    with pytest.raises(OutOfRangeError):
        _run(policy, flaky)
    assert flaky.calls == 1


def test_missing_object_is_not_retried():
    policy = create_fetch_retry_policy(cancel_event=threading.Event(), initial_backoff_s=0)
    flaky = Flaky(1, ObjectNotFoundError("gone", status=404))
    with pytest.raises(ObjectNotFoundError):
        _run(policy, flaky)
    assert flaky.calls == 1


def test_cancellation_stops_retrying():
    event = threading.Event()
    event.set()
    policy = create_fetch_retry_policy(cancel_event=event, initial_backoff_s=10)
    flaky = Flaky(1, TransientStorageError("503"))
    with pytest.raises(TransientStorageError):
        _run(policy, flaky)
    assert flaky.calls == 1


def test_backoff_grows_and_is_capped():
    policy = create_fetch_retry_policy(
        cancel_event=threading.Event(), initial_backoff_s=1.0, max_backoff_s=3.0
    )
    waits = []
    for attempt_number in (1, 2, 3, 4):
        state = type("State", (), {"attempt_number": attempt_number})()
        waits.append(policy.wait(state))
    assert waits == [1.0, 2.0, 3.0, 3.0]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        create_fetch_retry_policy(cancel_event=threading.Event(), max_attempts=0)
