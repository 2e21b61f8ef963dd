"""Run configuration: models and the file/env/CLI loader."""

from .loader import ENV_PREFIX, export_config_schema, load_config
from .models import (
    CacheConfig,
    CandidatesConfig,
    CatalogConfig,
    OutputConfig,
    PiScanConfig,
    RetryConfig,
    ScanConfig,
    StorageConfig,
    WorkersConfig,
)

__all__ = [
    "CacheConfig",
    "CandidatesConfig",
    "CatalogConfig",
    "ENV_PREFIX",
    "OutputConfig",
    "PiScanConfig",
    "RetryConfig",
    "ScanConfig",
    "StorageConfig",
    "WorkersConfig",
    "export_config_schema",
    "load_config",
]
