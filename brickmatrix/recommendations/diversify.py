from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

import numpy as np

from .models import Candidate

logger = logging.getLogger(__name__)


class DiversificationSelector:
    """Picks a subset of the pool with at most ``builder_cap`` listings per
    builder and ``segment_cap`` per price segment.

    Greedy single pass over a shuffled pool. A candidate that would break
    either cap is skipped, never revisited.
    """

    def __init__(self, builder_cap: int = 2, segment_cap: int = 8) -> None:
        if builder_cap < 1 or segment_cap < 1:
            raise ValueError("diversification caps must be at least 1")
        self.builder_cap = builder_cap
        self.segment_cap = segment_cap

    def select(
        self,
        pool: Sequence[Candidate],
        target_size: int = 30,
        rng: np.random.Generator | None = None,
    ) -> list[Candidate]:
        if target_size <= 0 or not pool:
            return []

        rng = rng if rng is not None else np.random.default_rng()
        order = rng.permutation(len(pool))

        builders: Counter[str] = Counter()
        segments: Counter[str] = Counter()
        selected: list[Candidate] = []
        for idx in order:
            candidate = pool[int(idx)]
            if builders[candidate.builder_name] >= self.builder_cap:
                continue
            if segments[candidate.segment] >= self.segment_cap:
                continue
            selected.append(candidate)
            builders[candidate.builder_name] += 1
            segments[candidate.segment] += 1
            if len(selected) >= target_size:
                break

        logger.info(
            "Selected %d/%d candidates (%d builders, %d segments)",
            len(selected), len(pool), len(builders), len(segments),
        )
        return selected
