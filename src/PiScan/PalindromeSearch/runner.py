"""Run harness wiring configuration, storage, catalog and the worker pool.

:class:`SearchRun` owns every resource a run needs: the bucket (and its HTTP
client), the result set loaded from the manifest, the optional shared page
cache and the output sink. ``run()`` plans the chunks, drives the
:class:`~PiScan.PalindromeSearch.orchestrator.Orchestrator` and turns a run
cancelled by a failing chunk into :class:`RunAbortedError`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from PiScan.DigitStream.cache import PageCache
from PiScan.DigitStream.catalog import ResultSet
from PiScan.DigitStream.manifest import load_manifest
from PiScan.ObjectStore.http import HttpBucket, build_http_client
from PiScan.ObjectStore.local import LocalBucket

from .config.models import PiScanConfig, StorageConfig
from .errors import ConfigError, RunAbortedError
from .models import RunResult
from .orchestrator import Orchestrator, RunState, Worker, plan_chunks
from .output import OutputSink

__all__ = ("SearchRun", "build_bucket", "load_result_set")

logger = logging.getLogger(__name__)


def build_bucket(storage: StorageConfig) -> Any:
    """Create the bucket named by ``storage.backend``."""
    if storage.backend == "http":
        client = build_http_client(
            timeout_connect_s=storage.connect_timeout_s,
            timeout_read_s=storage.read_timeout_s,
            max_connections=storage.max_connections,
            user_agent=storage.user_agent,
        )
        return HttpBucket(storage.base_url or "", client=client)
    return LocalBucket(storage.root or ".")


def load_result_set(config: PiScanConfig) -> ResultSet:
    if not config.catalog.manifest:
        raise ConfigError("catalog.manifest is required")
    return load_manifest(config.catalog.manifest, word_format=config.catalog.word_format)


class SearchRun:
    """One palindrome search over the configured digit stream.

    Args:
        config: Validated run configuration.
        result_set: Catalog to scan; loaded from ``catalog.manifest`` if omitted.
        bucket: Storage to read from; built from ``storage`` if omitted.
        sink: Output sink; defaults to ``output.directory``.
    """

    def __init__(
        self,
        config: PiScanConfig,
        *,
        result_set: Optional[ResultSet] = None,
        bucket: Any = None,
        sink: Optional[OutputSink] = None,
        state: Optional[RunState] = None,
        poll_interval_s: float = 0.5,
    ) -> None:
        self.config = config
        self.result_set = result_set if result_set is not None else load_result_set(config)
        self._owns_bucket = bucket is None
        self.bucket = bucket if bucket is not None else build_bucket(config.storage)
        self.sink = sink or OutputSink(config.output.directory)
        self.state = state or RunState()
        self.poll_interval_s = poll_interval_s
        self.page_cache: Optional[PageCache] = None
        if config.cache.enabled:
            self.page_cache = PageCache(config.cache.page_size, config.cache.max_pages)

    def _make_worker(self, worker_id: int, state: RunState) -> Worker:
        scan, retry = self.config.scan, self.config.retry
        return Worker(
            worker_id,
            self.result_set,
            self.bucket,
            self.sink,
            state,
            page_cache=self.page_cache,
            initial_radius=scan.initial_radius,
            min_radius=scan.min_radius,
            max_attempts=retry.max_attempts,
            initial_backoff_s=retry.initial_backoff_s,
            max_backoff_s=retry.max_backoff_s,
            poll_interval_s=self.poll_interval_s,
        )

    def run(self) -> RunResult:
        """Scan every chunk.

        Raises:
            RunAbortedError: If a chunk failed and cancelled the run.
        """
        scan = self.config.scan
        logger.info(
            "Starting search",
            extra={
                "total_digits": self.result_set.total_digits,
                "start": scan.start,
                "chunk_size": scan.chunk_size,
                "workers": self.config.workers.count,
            },
        )
        chunks = plan_chunks(
            self.result_set.total_digits,
            scan.chunk_size,
            start=scan.start,
            overlap=scan.overlap,
            extend=scan.extend_chunks,
        )
        orchestrator = Orchestrator(
            chunks,
            self._make_worker,
            self.config.workers.count,
            queue_size=self.config.workers.effective_queue_size,
            state=self.state,
            poll_interval_s=self.poll_interval_s,
        )
        try:
            result = orchestrator.run()
        finally:
            if self._owns_bucket:
                self.close()

        if self.state.failure is not None:
            raise RunAbortedError(self.state.failure, chunks_completed=result.chunks_completed)
        return result

    def close(self) -> None:
        close = getattr(self.bucket, "close", None)
        if close is not None:
            close()
