from __future__ import annotations

import os

import pytest

# Must run before brickmatrix.app builds its engine: no simulated latency,
# reproducible randomness.
os.environ.setdefault("BRICKMATRIX_LATENCY_SCALE", "0")
os.environ.setdefault("BRICKMATRIX_RANDOM_SEED", "7")
os.environ.setdefault("BRICKMATRIX_SOURCE_FAILURE_RATE", "0")


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
