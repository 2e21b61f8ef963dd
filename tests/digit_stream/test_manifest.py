"""Manifest loading from YAML and JSON."""

from __future__ import annotations

import json

import pytest

from PiScan.DigitStream.codec import PACKED32, YCD64
from PiScan.DigitStream.errors import CatalogError
from PiScan.DigitStream.manifest import load_manifest, parse_manifest

MANIFEST_YAML = """\
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
    total_digits: 1500000000000
"""


def test_load_yaml_manifest(tmp_path):
    path = tmp_path / "pi.yaml"
    path.write_text(MANIFEST_YAML, encoding="utf-8")

    rs = load_manifest(path)

    assert len(rs) == 2
    assert rs.radix == 10
    assert rs.word_format is YCD64
    assert rs.total_digits == 1_500_000_000_000
    assert rs[1].first_digit_offset == 201
    assert rs[1].object_name.endswith("- 1.ycd")


def test_load_json_manifest_with_word_format_override(tmp_path):
    path = tmp_path / "pi.json"
    path.write_text(
        json.dumps(
            {
                "radix": 16,
                "blocks": [
                    {"object_name": "hex/0.bin", "block_id": 0, "block_size": 80},
                    {"object_name": "hex/1.bin", "block_id": 1, "block_size": 20},
                ],
            }
        ),
        encoding="utf-8",
    )

    default = load_manifest(path)
    assert default.word_format is PACKED32
    assert default.total_digits == 100
    assert default.digits_per_word == 8

    overridden = load_manifest(path, word_format="ycd64")
    assert overridden.word_format is YCD64
    assert overridden.digits_per_word == 16


def test_block_radix_defaults_to_manifest_radix():
    rs = parse_manifest(
        {"radix": 16, "blocks": [{"object_name": "a", "block_id": 0, "block_size": 8}]}
    )
    assert rs[0].header.radix == 16


@pytest.mark.parametrize(
    "data",
    [
        {"blocks": []},
        {"radix": 8, "blocks": [{"object_name": "a", "block_id": 0, "block_size": 1}]},
        {"word_format": "packed48", "blocks": [{"object_name": "a", "block_id": 0, "block_size": 1}]},
        {"blocks": [{"object_name": "a", "block_id": 0, "block_size": 0}]},
        {"blocks": [{"object_name": "a", "block_id": 0, "block_size": 5, "extra": True}]},
        {
            "blocks": [
                {"object_name": "a", "block_id": 1, "block_size": 5},
                {"object_name": "b", "block_id": 0, "block_size": 5},
            ]
        },
        {
            "radix": 10,
            "blocks": [
                {"object_name": "a", "block_id": 0, "block_size": 5},
                {"object_name": "b", "block_id": 1, "block_size": 5, "radix": 16},
            ],
        },
    ],
)
def test_invalid_manifests_raise_catalog_error(data):
    with pytest.raises(CatalogError):
        parse_manifest(data)


def test_unreadable_or_malformed_files(tmp_path):
    with pytest.raises(CatalogError):
        load_manifest(tmp_path / "missing.yaml")

    bad_suffix = tmp_path / "pi.toml"
    bad_suffix.write_text("radix = 10", encoding="utf-8")
    with pytest.raises(CatalogError, match="Unsupported manifest format"):
        load_manifest(bad_suffix)

    broken = tmp_path / "pi.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError, match="Invalid manifest syntax"):
        load_manifest(broken)
