from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any


def normalize_key(key: object) -> str:
    """Case- and whitespace-insensitive key used by every lookup table."""
    if not isinstance(key, str):
        return ""
    return " ".join(key.split()).lower()


class FallbackTable(Mapping):
    """Read-only string-keyed table whose lookups never fail.

    ``table[key]`` returns the stored value or ``default`` when the key is
    unknown, empty or not a string. ``key in table`` still reports whether the
    key was actually present.
    """

    def __init__(self, data: Mapping[str, Any], default: Any) -> None:
        self._data: dict[str, Any] = {normalize_key(k): v for k, v in data.items()}
        self._labels: dict[str, str] = {normalize_key(k): k for k in data}
        self.default = default

    def __getitem__(self, key: object) -> Any:
        return self._data.get(normalize_key(key), self.default)

    def __contains__(self, key: object) -> bool:
        return normalize_key(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels.values())

    def __len__(self) -> int:
        return len(self._data)

    def lookup(self, key: object) -> Any:
        return self[key]

    def label(self, key: object) -> str | None:
        """Return the canonical spelling of *key*, or ``None`` if unknown."""
        return self._labels.get(normalize_key(key))


def contains_any(text: object, needles: list[str] | tuple[str, ...]) -> bool:
    """Substring test that tolerates missing or non-string input."""
    haystack = normalize_key(text)
    if not haystack:
        return False
    return any(normalize_key(n) and normalize_key(n) in haystack for n in needles)
