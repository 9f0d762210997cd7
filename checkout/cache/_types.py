"""
Cache types.
"""

from __future__ import annotations

import fnmatch
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol — Backends Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class Tier[T](Protocol):
    """
    Cache tier protocol.

    Implement this for shared backends (Redis, Memcached, etc.). The
    in-process default is `TTLTier`.
    """

    @property
    def name(self) -> str:
        """Tier name for debugging."""
        ...

    async def get(self, key: str) -> T | None:
        """Get value. Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: T) -> None:
        """Set value."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching glob pattern. Returns count."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# TTL Tier — In-Memory LRU With Expiry
# ═══════════════════════════════════════════════════════════════════════════════


class TTLTier[T]:
    """
    In-memory LRU tier whose entries expire after `ttl`.

    Example:
        tier = TTLTier[DiscountCandidate](ttl=timedelta(seconds=60), max_size=1000)
    """

    def __init__(
        self,
        ttl: timedelta,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl.total_seconds()
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, T]] = OrderedDict()

    @property
    def name(self) -> str:
        return "ttl"

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (self._clock() + self._ttl, value)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            del self._entries[key]
        return len(matched)


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache lookup result with hit metadata."""

    value: T
    hit: bool
    tier: str | None


class CacheErrorKind(Enum):
    """Cache error kinds."""

    CONNECTION = auto()
    SERIALIZATION = auto()


@dataclass(frozen=True, slots=True)
class CacheError:
    """Cache operation error."""

    kind: CacheErrorKind
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Tier",
    "TTLTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
)
