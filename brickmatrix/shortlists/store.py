from __future__ import annotations

import copy
import threading
from collections.abc import Callable
from typing import Any, Protocol

Entries = list[dict[str, Any]]


class KeyValueStore(Protocol):
    """Persistence seam for shortlists. One list of JSON-able dicts per namespace."""

    def get(self, namespace: str) -> Entries: ...

    def set(self, namespace: str, items: Entries) -> None: ...

    def delete(self, namespace: str) -> None: ...

    def update(self, namespace: str, change: Callable[[Entries], Entries | None]) -> None:
        """Atomically read, transform and write one namespace.

        ``change`` receives a copy of the current entries. Returning ``None``
        leaves the namespace untouched.
        """
        ...


class InMemoryKeyValueStore:
    """Process-local store. Returns copies so callers cannot mutate stored state."""

    def __init__(self) -> None:
        self._data: dict[str, Entries] = {}
        self._lock = threading.RLock()

    def get(self, namespace: str) -> Entries:
        with self._lock:
            return copy.deepcopy(self._data.get(namespace, []))

    def set(self, namespace: str, items: Entries) -> None:
        with self._lock:
            self._data[namespace] = copy.deepcopy(items)

    def delete(self, namespace: str) -> None:
        with self._lock:
            self._data.pop(namespace, None)

    def update(self, namespace: str, change: Callable[[Entries], Entries | None]) -> None:
        with self._lock:
            updated = change(copy.deepcopy(self._data.get(namespace, [])))
            if updated is not None:
                self._data[namespace] = copy.deepcopy(updated)

    def namespaces(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
