"""Chunk scheduling and the worker pool."""

from .scheduler import DEFAULT_OVERLAP, ChunkScheduler, Orchestrator, plan_chunks
from .workers import RunState, Worker

__all__ = [
    "ChunkScheduler",
    "DEFAULT_OVERLAP",
    "Orchestrator",
    "RunState",
    "Worker",
    "plan_chunks",
]
