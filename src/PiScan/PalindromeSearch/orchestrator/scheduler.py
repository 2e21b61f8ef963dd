# === NAVMAP v1 ===
# {
#   "module": "PiScan.PalindromeSearch.orchestrator.scheduler",
#   "purpose": "Chunk planning, bounded dispatch and the worker pool",
#   "sections": [
#     {"id": "plan-chunks", "name": "plan_chunks", "anchor": "#function-plan-chunks", "kind": "function"},
#     {"id": "chunkscheduler", "name": "ChunkScheduler", "anchor": "#class-chunkscheduler", "kind": "class"},
#     {"id": "orchestrator", "name": "Orchestrator", "anchor": "#class-orchestrator", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Chunk planning, dispatch and the worker pool.

**Chunk layout:** nominal starts are ``start, start + C, start + 2C, ...``
while below ``total_digits``. The first chunk of a run begins exactly at
``start``; every later chunk begins ``overlap`` digits before its nominal
start. Every chunk is ``C`` digits long (``C + overlap`` for later chunks
when ``extend`` is set), so a final chunk that runs past the end of the
stream fails its read and aborts the run.

Each chunk reports only the centers of its *owned window*. Where two
buffers overlap the windows meet in the middle of the overlap; where they
only touch, at the shared edge.

**Architecture:**

    Orchestrator (main)
      ├─ ChunkScheduler thread: plans chunks into a bounded queue
      ├─ Worker threads: fetch, scan and write chunks
      └─ RunState: cancellation event, counters, first failure

**Usage:**

    orch = Orchestrator(
        chunks=plan_chunks(result_set.total_digits, 100_000_000),
        worker_factory=make_worker,
        worker_count=150,
    )
    result = orch.run()
"""

from __future__ import annotations

import logging
import threading
import time
from queue import Full, Queue
from typing import Callable, Iterable, Iterator, Optional

from ..errors import SchedulerError
from ..models import Chunk, RunResult
from .workers import RunState, Worker

__all__ = ["plan_chunks", "ChunkScheduler", "Orchestrator", "DEFAULT_OVERLAP"]

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP = 1000


def plan_chunks(
    total_digits: int,
    chunk_size: int,
    *,
    start: int = 0,
    overlap: int = DEFAULT_OVERLAP,
    extend: bool = False,
) -> Iterator[Chunk]:
    """Yield the chunks covering ``[start, total_digits)`` in order."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be in [0, chunk_size)")
    if start < 0:
        raise ValueError("start must be >= 0")

    nominal = start
    owned_start = start
    while nominal < total_digits:
        first = nominal == start
        begin = nominal if first else nominal - overlap
        length = chunk_size + overlap if extend and not first else chunk_size
        end = begin + length

        following = nominal + chunk_size
        if following < total_digits:
            next_begin = following - overlap
            owned_end = next_begin + max(0, end - next_begin) // 2
        else:
            owned_end = end

        yield Chunk(
            start=begin,
            length=length,
            id=nominal,
            owned_start=owned_start,
            owned_end=owned_end,
        )
        owned_start = owned_end
        nominal = following


class ChunkScheduler:
    """Feeds planned chunks into a bounded queue.

    ``put`` blocks while the queue is full, waking every ``poll_interval_s``
    to check for cancellation. After the last chunk one ``None`` sentinel per
    consumer is queued; on cancellation no sentinels are sent because workers
    exit on the event themselves.
    """

    def __init__(
        self,
        chunks: Iterable[Chunk],
        queue: "Queue[Optional[Chunk]]",
        state: RunState,
        consumers: int,
        *,
        poll_interval_s: float = 0.5,
    ) -> None:
        self.chunks = chunks
        self.queue = queue
        self.state = state
        self.consumers = consumers
        self.poll_interval_s = poll_interval_s
        self.dispatched = 0

    def _put(self, item: Optional[Chunk]) -> bool:
        while not self.state.cancelled:
            try:
                self.queue.put(item, timeout=self.poll_interval_s)
                return True
            except Full:
                continue
        return False

    def run(self) -> int:
        """Dispatch every chunk; returns how many were queued."""
        logger.debug("Scheduler started")
        for chunk in self.chunks:
            if not self._put(chunk):
                logger.warning(f"Scheduler stopped after {self.dispatched} chunk(s): run cancelled")
                return self.dispatched
            self.dispatched += 1
        for _ in range(self.consumers):
            if not self._put(None):
                break
        logger.debug(f"Scheduler finished: {self.dispatched} chunk(s) queued")
        return self.dispatched


class Orchestrator:
    """Runs one scheduler thread and a fixed pool of worker threads.

    Attributes:
        worker_count: Number of worker threads
        queue_size: Capacity of the chunk queue
        state: Shared run state
    """

    def __init__(
        self,
        chunks: Iterable[Chunk],
        worker_factory: Callable[[int, RunState], Worker],
        worker_count: int,
        *,
        queue_size: Optional[int] = None,
        state: Optional[RunState] = None,
        poll_interval_s: float = 0.5,
    ) -> None:
        if worker_count < 1:
            raise ValueError("worker_count must be >= 1")
        self.worker_count = worker_count
        self.queue_size = queue_size or worker_count
        self.state = state or RunState()
        self._queue: "Queue[Optional[Chunk]]" = Queue(maxsize=self.queue_size)
        self._scheduler = ChunkScheduler(
            chunks,
            self._queue,
            self.state,
            worker_count,
            poll_interval_s=poll_interval_s,
        )
        self._workers = [worker_factory(i, self.state) for i in range(worker_count)]
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        """Start worker threads and the scheduler thread."""
        logger.info(f"Starting orchestrator with {self.worker_count} workers")
        for worker in self._workers:
            t = threading.Thread(
                target=worker.run,
                args=(self._queue,),
                daemon=True,
                name=f"worker-{worker.worker_id}",
            )
            t.start()
            self._threads.append(t)

        dispatcher = threading.Thread(target=self._dispatch, daemon=True, name="scheduler")
        dispatcher.start()
        self._threads.append(dispatcher)

    def _dispatch(self) -> None:
        try:
            self._scheduler.run()
        except Exception as e:
            logger.error(f"Scheduler error: {e}", exc_info=True)
            failure = SchedulerError(f"Chunk dispatch failed: {type(e).__name__}: {e}")
            failure.__cause__ = e
            self.state.fail(failure)
        finally:
            self.state.result.chunks_planned = self._scheduler.dispatched

    def cancel(self) -> None:
        """Signal all threads to stop after their current chunk."""
        logger.info("Orchestrator cancelling")
        self.state.cancel()

    def join(self, timeout: Optional[float] = None) -> None:
        for t in self._threads:
            t.join(timeout)

    def run(self) -> RunResult:
        """Start, wait for every thread and return the run counters.

        ``KeyboardInterrupt`` cancels the run and still waits for workers to
        finish the chunk they are on.
        """
        began = time.monotonic()
        self.start()
        try:
            while any(t.is_alive() for t in self._threads):
                self.join(timeout=0.5)
        except KeyboardInterrupt:
            self.cancel()
            self.join()
        result = self.state.result
        result.cancelled = self.state.cancelled
        result.elapsed_s = time.monotonic() - began
        logger.info(
            f"Orchestrator finished: {result.chunks_completed}/{result.chunks_planned} chunk(s), "
            f"{result.records_written} record(s), {result.retries} retry(ies)"
        )
        return result
