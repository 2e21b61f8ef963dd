# === NAVMAP v1 ===
# {
#   "module": "PiScan.PalindromeSearch.orchestrator.workers",
#   "purpose": "Chunk fetch, retry, scan and write for one worker thread",
#   "sections": [
#     {"id": "runstate", "name": "RunState", "anchor": "#class-runstate", "kind": "class"},
#     {"id": "worker", "name": "Worker", "anchor": "#class-worker", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Chunk execution for the palindrome search pool.

This module provides:
- :class:`RunState`, the only mutable state shared by workers: the
  cancellation event, the run counters and the first failure
- :class:`Worker`, which pulls chunks from the queue and, per chunk, fetches
  the digits (retrying I/O failures), scans them and writes the batch file

**Usage:**

    state = RunState()
    worker = Worker(
        worker_id=3,
        result_set=result_set,
        bucket=bucket,
        sink=OutputSink("full_results"),
        state=state,
    )
    worker.run(chunk_queue)

A chunk that cannot be completed sets the cancellation event. Every worker
sees it at its next queue pull or retry check and exits; results of chunks
still in flight at that point are discarded.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import TYPE_CHECKING, Optional

from PiScan.DigitStream.reader import open_digit_stream, read_exact

from ..errors import ChunkFailedError, PalindromeSearchError
from ..models import Chunk, RunResult
from ..retry import create_fetch_retry_policy
from ..scanner import MIN_RADIUS, scan_chunk

if TYPE_CHECKING:
    from PiScan.DigitStream.cache import PageCache
    from PiScan.DigitStream.catalog import ResultSet
    from PiScan.ObjectStore.base import Bucket

    from ..output import OutputSink

__all__ = ["RunState", "Worker"]

logger = logging.getLogger(__name__)


class RunState:
    """Cancellation signal and counters shared by the scheduler and workers."""

    def __init__(self, cancel_event: Optional[threading.Event] = None) -> None:
        self.cancel_event = cancel_event or threading.Event()
        self.result = RunResult()
        self.failure: Optional[PalindromeSearchError] = None
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def record_success(self, chunk: Chunk, records: int, path: Path) -> None:
        with self._lock:
            self.result.chunks_completed += 1
            self.result.records_written += records
            self.result.output_files.append(str(path))

    def record_retry(self) -> None:
        with self._lock:
            self.result.retries += 1

    def fail(self, failure: PalindromeSearchError) -> bool:
        """Record ``failure`` and cancel the run.

        Returns ``True`` when this is the run's first failure. Failures that
        arrive after cancellation are not recorded.
        """
        with self._lock:
            if self.cancel_event.is_set():
                return False
            self.failure = failure
            self.cancel_event.set()
            return True


class Worker:
    """Processes chunks one at a time until a sentinel or cancellation.

    Attributes:
        worker_id: Identifier used in thread names and log records
        poll_interval_s: Queue timeout between cancellation checks
    """

    def __init__(
        self,
        worker_id: int,
        result_set: "ResultSet",
        bucket: "Bucket",
        sink: "OutputSink",
        state: RunState,
        *,
        page_cache: Optional["PageCache"] = None,
        initial_radius: int = 1,
        min_radius: int = MIN_RADIUS,
        max_attempts: int = 3,
        initial_backoff_s: float = 1.0,
        max_backoff_s: float = 30.0,
        poll_interval_s: float = 1.0,
    ) -> None:
        self.worker_id = worker_id
        self.result_set = result_set
        self.bucket = bucket
        self.sink = sink
        self.state = state
        self.page_cache = page_cache
        self.initial_radius = initial_radius
        self.min_radius = min_radius
        self.max_attempts = max_attempts
        self.initial_backoff_s = initial_backoff_s
        self.max_backoff_s = max_backoff_s
        self.poll_interval_s = poll_interval_s
        self.log = logging.LoggerAdapter(logger, extra={"worker_id": worker_id})

    def run(self, chunks: "Queue[Optional[Chunk]]") -> None:
        """Pull and process chunks until a ``None`` sentinel or cancellation."""
        self.log.debug(f"Worker {self.worker_id} started")
        while not self.state.cancelled:
            try:
                chunk = chunks.get(timeout=self.poll_interval_s)
            except Empty:
                continue
            if chunk is None:
                break
            if self.state.cancelled:
                break
            self.run_one(chunk)
        self.log.debug(f"Worker {self.worker_id} exiting")

    def fetch(self, chunk: Chunk) -> bytes:
        """Read the digits of ``chunk`` through a fresh reader."""
        with open_digit_stream(self.result_set, self.bucket, cache=self.page_cache) as reader:
            reader.seek(chunk.start)
            return read_exact(reader, chunk.length)

    def fetch_with_retry(self, chunk: Chunk) -> bytes:
        """Fetch ``chunk``, retrying I/O failures with exponential backoff.

        Raises:
            ChunkFailedError: When retries are exhausted or the error is not
                retryable.
        """
        policy = create_fetch_retry_policy(
            cancel_event=self.state.cancel_event,
            max_attempts=self.max_attempts,
            initial_backoff_s=self.initial_backoff_s,
            max_backoff_s=self.max_backoff_s,
            on_retry=lambda _state: self.state.record_retry(),
            log=self.log,
        )
        attempts = 0
        try:
            for attempt in policy:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    digits = self.fetch(chunk)
        except Exception as exc:
            raise ChunkFailedError(chunk, attempts, exc) from exc
        return digits

    def run_one(self, chunk: Chunk) -> Optional[Path]:
        """Process one chunk; returns its batch file, or ``None`` if it was not written."""
        self.log.info(
            f"Worker {self.worker_id} processing chunk {chunk.id}: "
            f"start={chunk.start} length={chunk.length}"
        )
        try:
            digits = self.fetch_with_retry(chunk)
            records = scan_chunk(chunk, digits, self.initial_radius, self.min_radius)
            if self.state.cancelled:
                self.log.debug(f"Discarding chunk {chunk.id}: run cancelled")
                return None
            path = self.sink.write(chunk, records)
        except ChunkFailedError as failure:
            self._report(failure)
            return None
        except Exception as exc:
            self._report(ChunkFailedError(chunk, 1, exc))
            return None

        self.state.record_success(chunk, len(records), path)
        self.log.info(
            f"Chunk {chunk.id} done: {len(records)} record(s) written to {path.name}"
        )
        return path

    def _report(self, failure: ChunkFailedError) -> None:
        if self.state.fail(failure):
            self.log.error(f"Worker {self.worker_id} cancelling run: {failure}")
        else:
            self.log.debug(f"Worker {self.worker_id} chunk {failure.chunk.id} stopped: {failure}")
