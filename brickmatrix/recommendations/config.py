from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _env_seed() -> int | None:
    raw = os.getenv("BRICKMATRIX_RANDOM_SEED", "").strip()
    return int(raw) if raw.isdigit() else None


@dataclass(frozen=True)
class EngineConfig:
    cache_ttl: float = field(default_factory=lambda: _env_float("BRICKMATRIX_CACHE_TTL", 900.0))  # 15 minutes
    target_size: int = field(default_factory=lambda: _env_int("BRICKMATRIX_TARGET_SIZE", 30))
    builder_cap: int = field(default_factory=lambda: _env_int("BRICKMATRIX_BUILDER_CAP", 2))
    segment_cap: int = field(default_factory=lambda: _env_int("BRICKMATRIX_SEGMENT_CAP", 8))
    pool_size: int = field(default_factory=lambda: _env_int("BRICKMATRIX_POOL_SIZE", 48))
    source_timeout: float = field(default_factory=lambda: _env_float("BRICKMATRIX_SOURCE_TIMEOUT", 5.0))
    latency_scale: float = field(default_factory=lambda: _env_float("BRICKMATRIX_LATENCY_SCALE", 1.0))
    source_failure_rate: float = field(default_factory=lambda: _env_float("BRICKMATRIX_SOURCE_FAILURE_RATE", 0.0))
    random_seed: int | None = field(default_factory=_env_seed)


DEFAULT_ENGINE_CONFIG = EngineConfig()
