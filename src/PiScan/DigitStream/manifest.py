"""Block manifest loading.

A manifest lists the shards of one digit stream in block order. It is produced
by an external indexing step and consumed here as YAML or JSON::

    radix: 10
    word_format: ycd64
    blocks:
      - object_name: "Pi - Dec - Chudnovsky/Pi - Dec - Chudnovsky - 0.ycd"
        block_id: 0
        block_size: 1000000000000
        first_digit_offset: 201
      - object_name: "Pi - Dec - Chudnovsky/Pi - Dec - Chudnovsky - 1.ycd"
        block_id: 1
        block_size: 1000000000000
        first_digit_offset: 201
        total_digits: 2000000000000

Per-block ``radix`` defaults to the manifest radix. Validation happens twice:
Pydantic checks field shapes, then :class:`ResultSet` checks ordering and
sizes.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, ClassVar, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .catalog import BlockDescriptor, BlockHeader, ResultSet
from .codec import get_word_format
from .errors import CatalogError

__all__ = ("ManifestBlock", "Manifest", "load_manifest", "parse_manifest")

_LOGGER = logging.getLogger(__name__)


class ManifestBlock(BaseModel):
    """One shard entry."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    object_name: str = Field(min_length=1)
    block_id: int = Field(ge=0)
    block_size: int = Field(gt=0)
    first_digit_offset: int = Field(default=0, ge=0)
    payload_length: int = Field(default=0, ge=0)
    total_digits: int = Field(default=0, ge=0)
    radix: Optional[Literal[10, 16]] = None


class Manifest(BaseModel):
    """Ordered shard list for one digit stream."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    radix: Literal[10, 16] = 10
    word_format: str = Field(default="packed32", description="packed32 or ycd64")
    blocks: List[ManifestBlock]

    @field_validator("word_format")
    @classmethod
    def validate_word_format(cls, v: str) -> str:
        get_word_format(v)
        return v

    @field_validator("blocks")
    @classmethod
    def validate_blocks(cls, v: List[ManifestBlock]) -> List[ManifestBlock]:
        if not v:
            raise ValueError("blocks must not be empty")
        return v

    def to_result_set(self) -> ResultSet:
        descriptors = [
            BlockDescriptor(
                header=BlockHeader(
                    radix=block.radix or self.radix,
                    block_id=block.block_id,
                    block_size=block.block_size,
                    payload_length=block.payload_length,
                    total_digits=block.total_digits,
                ),
                object_name=block.object_name,
                first_digit_offset=block.first_digit_offset,
            )
            for block in self.blocks
        ]
        return ResultSet(descriptors, word_format=get_word_format(self.word_format))


def parse_manifest(data: Any, *, word_format: Optional[str] = None) -> ResultSet:
    """Validate a decoded manifest mapping and build its result set.

    ``word_format`` overrides the format named in the manifest.
    """
    if word_format is not None and isinstance(data, dict):
        data = {**data, "word_format": word_format}
    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as exc:
        raise CatalogError(f"Invalid manifest: {exc}") from exc
    return manifest.to_result_set()


def load_manifest(path: Path | str, *, word_format: Optional[str] = None) -> ResultSet:
    """Load a YAML (``.yaml``/``.yml``) or JSON manifest file."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Cannot read manifest {p}: {exc}") from exc

    suffix = p.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        elif suffix == ".json":
            data = json.loads(text)
        else:
            raise CatalogError(f"Unsupported manifest format: {suffix}. Use .yaml or .json")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Invalid manifest syntax in {p}: {exc}") from exc

    result_set = parse_manifest(data, word_format=word_format)
    _LOGGER.info(
        "Loaded manifest",
        extra={
            "path": str(p),
            "blocks": len(result_set),
            "radix": result_set.radix,
            "total_digits": result_set.total_digits,
        },
    )
    return result_set
