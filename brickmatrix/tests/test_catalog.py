from __future__ import annotations

from unittest.mock import patch

from brickmatrix.recommendations.catalog import (
    CITY_LOCALITIES,
    CONFIGURATION_AREA,
    SEGMENT_BASE_PRICES,
    canonical_city,
    is_tier1,
)
from brickmatrix.recommendations.config import EngineConfig
from brickmatrix.recommendations.lookups import FallbackTable, contains_any, normalize_key


def test_normalize_key():
    assert normalize_key("  Delhi   NCR ") == "delhi ncr"
    assert normalize_key(None) == ""
    assert normalize_key(3) == ""


def test_fallback_table_never_raises():
    table = FallbackTable({"Mumbai": 1}, default=0)
    assert table["mumbai"] == 1
    assert table["Atlantis"] == 0
    assert table[None] == 0
    assert "MUMBAI" in table
    assert "Atlantis" not in table
    assert list(table) == ["Mumbai"]
    assert table.label("mumbai") == "Mumbai"
    assert table.label("nowhere") is None


def test_catalog_defaults_for_unknown_keys():
    assert CITY_LOCALITIES["Indore"] == ["Central Area"]
    assert CONFIGURATION_AREA["9BHK"] == (600, 2_100)
    assert SEGMENT_BASE_PRICES["Indore"]["Premium"] > 0


def test_contains_any_is_guarded():
    assert contains_any("DLF Limited", ("DLF", "Godrej"))
    assert not contains_any("Rohan Builders", ("DLF",))
    assert not contains_any(None, ("DLF",))
    assert not contains_any("DLF", ("",))


def test_tier1_handles_aliases():
    assert is_tier1("bengaluru")
    assert is_tier1("Gurugram")
    assert not is_tier1("Indore")
    assert not is_tier1(None)
    assert canonical_city("   ") is None


def test_engine_config_reads_environment():
    env = {
        "BRICKMATRIX_CACHE_TTL": "60",
        "BRICKMATRIX_TARGET_SIZE": "12",
        "BRICKMATRIX_RANDOM_SEED": "99",
    }
    with patch.dict("os.environ", env):
        config = EngineConfig()
    assert config.cache_ttl == 60.0
    assert config.target_size == 12
    assert config.random_seed == 99
    assert config.builder_cap == 2
    assert config.segment_cap == 8


def test_engine_config_ignores_garbage_values():
    with patch.dict("os.environ", {"BRICKMATRIX_POOL_SIZE": "lots", "BRICKMATRIX_RANDOM_SEED": "abc"}):
        config = EngineConfig()
    assert config.pool_size == 48
    assert config.random_seed is None
