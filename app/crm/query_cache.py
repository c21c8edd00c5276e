"""
Process-wide query cache for API reads.

Keys are tuples whose first element names the resource, e.g.
("customers", {"limit": 100}) or ("customer-notes", "c_123"). Mutations
invalidate by prefix: ("customer-transactions",) drops every customer's
history, ("customer-notes", "c_123") drops one customer's notes.
"""
from __future__ import annotations

import json
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")


def _freeze(part: Any) -> Any:
    if isinstance(part, dict):
        return json.dumps(part, sort_keys=True, default=str)
    if isinstance(part, (list, tuple)):
        return tuple(_freeze(p) for p in part)
    return part


@dataclass
class _Entry:
    value: Any
    fetched_at: float


class QueryCache:
    def __init__(
        self,
        *,
        stale_seconds: float = 30,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_seconds = stale_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[tuple, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def make_key(key: tuple) -> tuple:
        return tuple(_freeze(p) for p in key)

    def get(self, key: tuple, *, stale_seconds: float | None = None) -> Any | None:
        k = self.make_key(key)
        ttl = self.stale_seconds if stale_seconds is None else stale_seconds
        with self._lock:
            entry = self._entries.get(k)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at >= ttl:
                del self._entries[k]
                return None
            self._entries.move_to_end(k)
            return entry.value

    def set(self, key: tuple, value: Any) -> None:
        k = self.make_key(key)
        with self._lock:
            self._entries[k] = _Entry(value=value, fetched_at=self._clock())
            self._entries.move_to_end(k)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def fetch(self, key: tuple, loader: Callable[[], T], *, stale_seconds: float | None = None) -> T:
        """
        Return the cached value for `key` while fresh; otherwise call `loader`
        and cache its result. Loader exceptions propagate and are not cached.
        """
        cached = self.get(key, stale_seconds=stale_seconds)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, prefix: tuple) -> int:
        p = self.make_key(prefix)
        n = len(p)
        with self._lock:
            doomed = [k for k in self._entries if k[:n] == p]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def init_query_cache(app) -> None:
    app.extensions["query_cache"] = QueryCache(stale_seconds=float(app.config.get("CACHE_STALE_SECONDS") or 0))


def query_cache() -> QueryCache:
    from flask import current_app

    return current_app.extensions["query_cache"]
