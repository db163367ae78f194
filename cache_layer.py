"""
In-process TTL cache for read-heavy listings (the supervisor dashboard).

Keys are ``NAMESPACE:<digest of params>`` so a whole namespace can be dropped
with one prefix invalidation when the underlying rows change.
"""
from __future__ import annotations

import hashlib
import json
import os
import threading
from typing import Any, Callable

from cachetools import TTLCache


def make_cache_key(namespace: str, *, params: dict[str, Any] | None = None) -> str:
    ns = str(namespace or "").strip().upper()
    blob = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    return f"{ns}:{hashlib.sha256(blob.encode('utf-8')).hexdigest()[:16]}"


class _ListingCache:
    def __init__(self, ttl: int, max_items: int):
        self._entries: TTLCache = TTLCache(maxsize=max_items, ttl=ttl)
        self._guard = threading.RLock()
        self._counters = {"hits": 0, "misses": 0, "invalidated": 0}

    def lookup(self, key: str, compute: Callable[[], Any]) -> Any:
        with self._guard:
            found = self._entries.get(key, _MISSING)
            self._counters["hits" if found is not _MISSING else "misses"] += 1
        if found is not _MISSING:
            return found
        # Built outside the lock; the listing query may be slow.
        fresh = compute()
        with self._guard:
            self._entries[key] = fresh
        return fresh

    def drop(self, prefix: str) -> int:
        if not prefix:
            return 0
        with self._guard:
            doomed = [k for k in self._entries if str(k).startswith(prefix)]
            for k in doomed:
                self._entries.pop(k, None)
            self._counters["invalidated"] += len(doomed)
        return len(doomed)

    def reset(self) -> None:
        with self._guard:
            self._entries.clear()
            self._counters = dict.fromkeys(self._counters, 0)

    def snapshot(self) -> dict[str, Any]:
        with self._guard:
            lookups = self._counters["hits"] + self._counters["misses"]
            return {
                "entries": len(self._entries),
                "maxsize": self._entries.maxsize,
                "ttl": self._entries.ttl,
                **self._counters,
                "hit_rate": round(100.0 * self._counters["hits"] / lookups, 2) if lookups else 0.0,
            }


_MISSING = object()


def _bounded_env(name: str, default: int, lo: int, hi: int) -> int:
    try:
        value = int(os.getenv(name, "") or default)
    except ValueError:
        value = default
    return max(lo, min(hi, value))


_listings = _ListingCache(
    ttl=_bounded_env("CACHE_TTL_SECONDS", 30, 1, 3600),
    max_items=_bounded_env("CACHE_MAX_ITEMS", 1000, 10, 100_000),
)


def cache_get_or_set(key: str, factory: Callable[[], Any]) -> Any:
    return _listings.lookup(key, factory)


def cache_invalidate_prefix(prefix: str) -> int:
    return _listings.drop(prefix)


def cache_clear() -> None:
    _listings.reset()


def cache_stats() -> dict[str, Any]:
    return _listings.snapshot()
