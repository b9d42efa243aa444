"""Bounded TTL cache.

Entries expire lazily on access. When full, the oldest-inserted entry is
evicted (insertion order, not access order).
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def quote_cache_key(from_asset: str, to_asset: str, amount: str) -> str:
    """Build a quote cache key. Slippage is deliberately not part of it."""
    return f"{from_asset}/{to_asset}/{amount}"


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: int


class TTLCache(Generic[V]):
    """Key/value store with per-entry expiry and a size bound."""

    def __init__(self, ttl_ms: int = 30000, max_size: int = 100, clock: Optional[Clock] = None):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.ttl_ms = ttl_ms
        self.max_size = max_size
        self._clock = clock or now_ms
        self._entries: dict[str, CacheEntry[V]] = {}

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value: V) -> None:
        # Re-inserting moves the key to the newest position
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Cache full ({self.max_size}), evicted {oldest}")

        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_ms)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix."""
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def prune(self) -> int:
        """Drop all expired entries. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> dict:
        return {"size": len(self._entries), "max_size": self.max_size, "ttl_ms": self.ttl_ms}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)
