from __future__ import annotations


class EngineError(Exception):
    """Base class for recommendation engine errors."""


class SourceFetchFailure(EngineError):
    """A single upstream source failed or timed out.

    Recoverable: the orchestrator absorbs it and leaves the matching
    ``SourceContext`` field empty.
    """

    def __init__(self, source: str, reason: str = "") -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"source '{source}' failed: {reason}" if reason else f"source '{source}' failed")


class InvalidFilterValue(EngineError):
    """A filter value had the wrong shape. The filter model substitutes a default."""

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"invalid value for '{field}': {value!r}")


class GenerationFailure(EngineError):
    """No candidates could be produced. Fails the whole request."""
