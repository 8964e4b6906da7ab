"""Revision-counted read cache.

Each collection carries a revision counter. A cached read remembers the
revisions of the collections it depends on and is refetched as soon as any
of them moves; mutations bump the counters of what they touched.
"""

import threading
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from .gateway import Collection

T = TypeVar("T")


@dataclass
class _Entry:
    revisions: tuple[int, ...]
    value: Any


class QueryCache:
    """Caches query results keyed by caller-chosen keys."""

    def __init__(self) -> None:
        self._revisions: dict[Collection, int] = {c: 0 for c in Collection}
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.Lock()

    def revision(self, collection: Collection) -> int:
        with self._lock:
            return self._revisions[collection]

    def invalidate(self, *collections: Collection) -> None:
        """Mark every cached read of these collections as stale."""
        with self._lock:
            for collection in collections:
                self._revisions[collection] += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_fetch(
        self,
        key: Hashable,
        collections: Iterable[Collection],
        fetch: Callable[[], T],
    ) -> T:
        """Return the cached value for key, refetching when it is stale."""
        collections = tuple(collections)
        with self._lock:
            current = tuple(self._revisions[c] for c in collections)
            entry = self._entries.get(key)
            if entry is not None and entry.revisions == current:
                return entry.value

        value = fetch()

        with self._lock:
            # revisions from before the fetch; a mid-fetch mutation leaves it stale
            self._entries[key] = _Entry(revisions=current, value=value)
        return value
