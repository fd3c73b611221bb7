"""Fetch orchestrator: fans out to every source and keeps whatever succeeds."""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from pydantic import BaseModel

from .errors import SourceFetchFailure
from .filters import RecommendationFilters
from .models import SourceContext
from .sources import SourceFetcher

logger = logging.getLogger(__name__)

_CONTEXT_FIELDS = {"location", "builder", "price_trends", "user_preferences"}


class FetchOrchestrator:
    """Runs all source fetchers concurrently and merges their results.

    One failing or slow source never fails the request: its error is logged,
    recorded in ``SourceContext.failures`` and the matching field stays empty.
    """

    def __init__(self, fetchers: Sequence[SourceFetcher], timeout: float = 5.0) -> None:
        unknown = [f.name for f in fetchers if f.name not in _CONTEXT_FIELDS]
        if unknown:
            raise ValueError(f"Unknown source names: {unknown}")
        self.fetchers = list(fetchers)
        self.timeout = timeout

    async def _run_one(self, fetcher: SourceFetcher, filters: RecommendationFilters) -> BaseModel:
        try:
            return await asyncio.wait_for(fetcher.fetch(filters), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise SourceFetchFailure(fetcher.name, f"timed out after {self.timeout}s") from None
        except SourceFetchFailure:
            raise
        except Exception as exc:
            raise SourceFetchFailure(fetcher.name, str(exc) or type(exc).__name__) from exc

    async def gather(self, filters: RecommendationFilters) -> SourceContext:
        start = time.monotonic()
        results = await asyncio.gather(
            *(self._run_one(f, filters) for f in self.fetchers),
            return_exceptions=True,
        )

        fields: dict[str, BaseModel] = {}
        failures: dict[str, str] = {}
        for fetcher, result in zip(self.fetchers, results):
            if isinstance(result, BaseException):
                reason = result.reason if isinstance(result, SourceFetchFailure) else repr(result)
                logger.warning("Source %r unavailable, continuing without it: %s", fetcher.name, reason)
                failures[fetcher.name] = reason
            else:
                fields[fetcher.name] = result

        elapsed_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info(
            "Fetched %d/%d sources in %sms (failed: %s)",
            len(fields), len(self.fetchers), elapsed_ms, ", ".join(failures) or "none",
        )
        return SourceContext(**fields, failures=failures)
