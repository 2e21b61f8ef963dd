"""Tenacity retry policy for chunk fetches.

A chunk fetch is retried on :class:`TransientStorageError` (timeouts, 429,
5xx) and on plain :class:`OSError`s such as connection resets. Permanent
storage failures (a missing object, other 4xx responses) and data errors from
:mod:`PiScan.DigitStream` fail the chunk on the first attempt. Backoff is
exponential from ``initial_backoff_s``: 1 s, 2 s, 4 s, ... capped at
``max_backoff_s``.

Sleeping waits on the run's cancellation event, so a cancelled run never sits
out a backoff, and the stop condition also fires once the event is set.

Example:
    >>> policy = create_fetch_retry_policy(cancel_event=threading.Event())
    >>> for attempt in policy:
    ...     with attempt:
    ...         digits = fetch(chunk)
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
)

from PiScan.ObjectStore.base import StorageError, TransientStorageError

__all__ = ("is_retryable", "create_fetch_retry_policy")

logger = logging.getLogger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Transient storage and connection failures are retried; the rest are not."""
    if isinstance(exc, TransientStorageError):
        return True
    return isinstance(exc, OSError) and not isinstance(exc, StorageError)


def create_fetch_retry_policy(
    *,
    cancel_event: threading.Event,
    max_attempts: int = 3,
    initial_backoff_s: float = 1.0,
    max_backoff_s: float = 30.0,
    on_retry: Optional[Callable[[RetryCallState], None]] = None,
    log: Optional[logging.Logger | logging.LoggerAdapter] = None,
) -> Retrying:
    """Build the per-chunk retry loop.

    Args:
        cancel_event: Run-wide cancellation signal; stops retrying and cuts
            backoff sleeps short.
        max_attempts: Total attempts, including the first.
        initial_backoff_s: Delay before the second attempt.
        max_backoff_s: Upper bound on any single delay.
        on_retry: Called before each backoff sleep.
        log: Logger used for the retry warning.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    log_before_sleep = before_sleep_log(log or logger, logging.WARNING, exc_info=False)

    def before_sleep(retry_state: RetryCallState) -> None:
        log_before_sleep(retry_state)
        if on_retry is not None:
            on_retry(retry_state)

    return Retrying(
        stop=stop_after_attempt(max_attempts) | stop_when_event_set(cancel_event),
        wait=wait_exponential(multiplier=initial_backoff_s, max=max_backoff_s),
        retry=retry_if_exception(is_retryable),
        sleep=cancel_event.wait,
        before_sleep=before_sleep,
        reraise=True,
    )
