"""
Pydantic v2 configuration models for a palindrome search run.

Sections:
- catalog: which manifest describes the digit stream
- storage: where the shards live (HTTP bucket or local directory)
- scan: chunk layout and scanner thresholds
- workers: pool size and queue capacity
- retry: per-chunk retry budget and backoff
- cache: optional shared page cache for raw reads
- output: result directory
- candidates: post-processing of result files

All models use extra="forbid". Values are composed file < env < CLI by
:func:`PiScan.PalindromeSearch.config.loader.load_config`.
"""

from __future__ import annotations

from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from PiScan.DigitStream.codec import get_word_format

# ============================================================================
# Sections
# ============================================================================


class CatalogConfig(BaseModel):
    """Manifest of the digit stream."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    manifest: Optional[str] = Field(default=None, description="Path to YAML/JSON block manifest")
    word_format: Optional[str] = Field(
        default=None, description="Override the manifest's word format (packed32 or ycd64)"
    )

    @field_validator("word_format")
    @classmethod
    def validate_word_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            get_word_format(v)
        return v


class StorageConfig(BaseModel):
    """Object storage backend serving the shards."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    backend: Literal["http", "local"] = Field(default="local", description="Bucket implementation")
    base_url: Optional[str] = Field(default=None, description="Bucket URL for the http backend")
    root: Optional[str] = Field(default=".", description="Directory for the local backend")
    connect_timeout_s: float = Field(default=10.0, description="Connect timeout (s)")
    read_timeout_s: float = Field(default=60.0, description="Read timeout (s)")
    max_connections: int = Field(default=200, description="HTTP connection pool size")
    user_agent: str = Field(default="PiScan/0.1", description="User-Agent header")

    @field_validator("connect_timeout_s", "read_timeout_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_connections must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_location(self) -> "StorageConfig":
        if self.backend == "http" and not self.base_url:
            raise ValueError("storage.base_url is required for the http backend")
        if self.backend == "local" and not self.root:
            raise ValueError("storage.root is required for the local backend")
        return self


class ScanConfig(BaseModel):
    """Chunk layout and palindrome thresholds."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    start: int = Field(default=0, description="Digit offset of the first chunk")
    chunk_size: int = Field(default=100_000_000, description="Digits per chunk")
    overlap: int = Field(default=1000, description="Digits re-read before each later chunk")
    extend_chunks: bool = Field(
        default=False, description="Read chunk_size + overlap digits for chunks after the first"
    )
    initial_radius: int = Field(default=1, description="Radius every expansion starts at")
    min_radius: int = Field(default=9, description="Smallest radius reported")

    @field_validator("start", "overlap", "initial_radius")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Must be >= 0")
        return v

    @field_validator("chunk_size", "min_radius")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v

    @model_validator(mode="after")
    def validate_overlap(self) -> "ScanConfig":
        if self.overlap >= self.chunk_size:
            raise ValueError("scan.overlap must be smaller than scan.chunk_size")
        return self


class WorkersConfig(BaseModel):
    """Worker pool sizing."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    count: int = Field(default=150, description="Worker threads")
    queue_size: Optional[int] = Field(
        default=None, description="Chunk queue capacity (defaults to the worker count)"
    )

    @field_validator("count")
    @classmethod
    def validate_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError("workers.count must be >= 1")
        return v

    @field_validator("queue_size")
    @classmethod
    def validate_queue_size(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("workers.queue_size must be >= 1")
        return v

    @property
    def effective_queue_size(self) -> int:
        return self.queue_size or self.count


class RetryConfig(BaseModel):
    """Per-chunk fetch retry."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=3, description="Attempts per chunk, including the first")
    initial_backoff_s: float = Field(default=1.0, description="Delay before the second attempt")
    max_backoff_s: float = Field(default=30.0, description="Cap on a single delay")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v

    @field_validator("initial_backoff_s", "max_backoff_s")
    @classmethod
    def validate_delays(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delay values must be >= 0")
        return v


class CacheConfig(BaseModel):
    """Shared page cache for raw catalog reads."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False, description="Enable the page cache")
    page_size: int = Field(default=1 << 16, description="Bytes per cached page")
    max_pages: int = Field(default=256, description="Pages kept in memory")

    @field_validator("page_size", "max_pages")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v


class OutputConfig(BaseModel):
    """Result files."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    directory: str = Field(default="full_results", description="Directory for batch files")


class CandidatesConfig(BaseModel):
    """Post-processing of batch files."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    min_length: int = Field(default=25, description="Shortest palindrome kept")
    excluded_last_digits: str = Field(
        default="024568", description="Palindromes ending in these digits are dropped"
    )
    api_url: str = Field(
        default="https://api.pi.delivery/v1/pi", description="Digit API used for validation"
    )
    validate_remote: bool = Field(default=False, description="Check candidates against api_url")
    radix: Literal[10, 16] = Field(default=10, description="Radix passed to the digit API")

    @field_validator("min_length")
    @classmethod
    def validate_min_length(cls, v: int) -> int:
        if v < 1:
            raise ValueError("min_length must be >= 1")
        return v


# ============================================================================
# Top level
# ============================================================================


class PiScanConfig(BaseModel):
    """Single source of truth for a run."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    workers: WorkersConfig = Field(default_factory=WorkersConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    candidates: CandidatesConfig = Field(default_factory=CandidatesConfig)

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
