"""Result-cache boundary.

The engine never touches a cache. The serving layer may look results up by
`cache_key(content, strategy, options)` before calling the engine.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class CacheLookup:
    hit: bool
    value: Any = None
    miss_reason: str | None = None  # "not_found" | "expired"


@dataclass(frozen=True, slots=True)
class CacheStats:
    entries: int
    hits: int
    misses: int
    hit_rate: float
    tokens_saved: int
    memory_size_bytes: int
    evictions: int
    invalidations: int


class ResultCache(Protocol):
    def get(self, key: str) -> CacheLookup:
        ...

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: float | None = None,
        file_path: str | None = None,
        token_count: int | None = None,
    ) -> None:
        ...

    def invalidate(self, key: str) -> bool:
        ...

    def invalidate_by_path(self, path: str) -> int:
        ...

    def get_stats(self) -> CacheStats:
        ...


def cache_key(content: str, strategy: str, options: Mapping[str, Any] | None = None) -> str:
    """SHA-256 over the call inputs; option order does not matter."""
    payload = json.dumps(
        {"content": content, "strategy": strategy, "options": dict(options or {})},
        sort_keys=True,
        default=str,
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class _Item:
    value: Any
    expires_at: float | None
    file_path: str | None
    token_count: int
    size: int


@dataclass(slots=True)
class MemoryResultCache:
    """Bounded in-process LRU cache implementing ResultCache."""

    max_entries: int = 256
    default_ttl: float | None = 3600.0
    _items: OrderedDict[str, _Item] = field(default_factory=OrderedDict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _hits: int = 0
    _misses: int = 0
    _tokens_saved: int = 0
    _evictions: int = 0
    _invalidations: int = 0

    def get(self, key: str) -> CacheLookup:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                self._misses += 1
                return CacheLookup(hit=False, miss_reason="not_found")
            if item.expires_at is not None and item.expires_at <= time.monotonic():
                del self._items[key]
                self._misses += 1
                return CacheLookup(hit=False, miss_reason="expired")
            self._items.move_to_end(key)
            self._hits += 1
            self._tokens_saved += item.token_count
            return CacheLookup(hit=True, value=item.value)

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: float | None = None,
        file_path: str | None = None,
        token_count: int | None = None,
    ) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        expires = time.monotonic() + ttl if ttl is not None else None
        size = len(json.dumps(value, default=str).encode("utf-8"))
        with self._lock:
            self._items[key] = _Item(value, expires, file_path, token_count or 0, size)
            self._items.move_to_end(key)
            while len(self._items) > self.max_entries:
                self._items.popitem(last=False)
                self._evictions += 1

    def invalidate(self, key: str) -> bool:
        with self._lock:
            if self._items.pop(key, None) is None:
                return False
            self._invalidations += 1
            return True

    def invalidate_by_path(self, path: str) -> int:
        with self._lock:
            keys = [k for k, item in self._items.items() if item.file_path == path]
            for k in keys:
                del self._items[k]
            self._invalidations += len(keys)
            return len(keys)

    def get_stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                entries=len(self._items),
                hits=self._hits,
                misses=self._misses,
                hit_rate=round(self._hits / lookups, 3) if lookups else 0.0,
                tokens_saved=self._tokens_saved,
                memory_size_bytes=sum(item.size for item in self._items.values()),
                evictions=self._evictions,
                invalidations=self._invalidations,
            )
