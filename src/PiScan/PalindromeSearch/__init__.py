# === NAVMAP v1 ===
# {
#   "module": "PiScan.PalindromeSearch.__init__",
#   "purpose": "Concurrent chunked palindrome search over a digit stream.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrent chunked palindrome search.

Typical use::

    from PiScan.PalindromeSearch import SearchRun, load_config

    config = load_config("piscan.yaml")
    result = SearchRun(config).run()
"""

from .candidates import Candidate, DigitApiValidator, find_candidates, iter_records
from .config import PiScanConfig, load_config
from .errors import (
    ChunkFailedError,
    ConfigError,
    OutputError,
    PalindromeSearchError,
    RunAbortedError,
    SchedulerError,
)
from .models import Chunk, PalindromeRecord, RunResult
from .orchestrator import ChunkScheduler, Orchestrator, RunState, Worker, plan_chunks
from .output import OutputSink
from .runner import SearchRun
from .scanner import find_palindromes, scan_chunk

__all__ = [
    "Candidate",
    "Chunk",
    "ChunkFailedError",
    "ChunkScheduler",
    "ConfigError",
    "DigitApiValidator",
    "Orchestrator",
    "OutputError",
    "OutputSink",
    "PalindromeRecord",
    "PalindromeSearchError",
    "PiScanConfig",
    "RunAbortedError",
    "RunResult",
    "RunState",
    "SchedulerError",
    "SearchRun",
    "Worker",
    "find_candidates",
    "find_palindromes",
    "iter_records",
    "load_config",
    "plan_chunks",
    "scan_chunk",
]
