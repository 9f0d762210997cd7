"""
Cache builder — fluent API.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from kungfu import LazyCoroResult, Result, Ok, Error

from checkout.cache._types import Tier, CacheResult, CacheError, CacheErrorKind

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Key Function Type
# ═══════════════════════════════════════════════════════════════════════════════

type KeyFn[K] = Callable[[K], str]


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    """
    Fluent cache builder.

    Type parameters:
        K: Key input type
        T: Value type
        E: Error type from fetch

    Example:
        promo_cache = (
            C.cache(promo_key, fetch_candidate)
            .tier(C.TTLTier(ttl=timedelta(seconds=60)))
            .build()
        )
    """

    _key_fn: KeyFn[K]
    _fetch: Callable[[K], LazyCoroResult[T, E]]
    _tiers: tuple[Tier[T], ...]

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        """Add cache tier."""
        return Cache(
            _key_fn=self._key_fn,
            _fetch=self._fetch,
            _tiers=(*self._tiers, t),
        )

    def build(self) -> CacheExecutor[K, T, E]:
        """Build executable cache."""
        return CacheExecutor(
            key_fn=self._key_fn,
            tiers=self._tiers,
            fetch=self._fetch,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Executor
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class CacheExecutor[K, T, E]:
    """Compiled cache executor. Read-through on `get`, explicit eviction."""

    key_fn: KeyFn[K]
    tiers: tuple[Tier[T], ...]
    fetch: Callable[[K], LazyCoroResult[T, E]]

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], E]:
        """
        Get value from cache.

        Tries tiers in order, then falls back to fetch. Only successful
        fetches populate the tiers; errors are never cached.
        """
        cache_key = self.key_fn(key)
        tiers = self.tiers
        fetch_fn = self.fetch

        async def execute() -> Result[CacheResult[T], E]:
            for t in tiers:
                try:
                    value = await t.get(cache_key)
                except Exception:
                    logger.warning("Cache tier %s failed on get %s", t.name, cache_key, exc_info=True)
                    continue
                if value is not None:
                    return Ok(CacheResult(value=value, hit=True, tier=t.name))

            match await fetch_fn(key):
                case Ok(value):
                    for t in tiers:
                        try:
                            await t.set(cache_key, value)
                        except Exception:
                            logger.warning("Cache tier %s failed on set %s", t.name, cache_key, exc_info=True)
                    return Ok(CacheResult(value=value, hit=False, tier=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def invalidate(self, key: K) -> Result[bool, CacheError]:
        """Invalidate key in all tiers."""
        cache_key = self.key_fn(key)
        deleted = False
        failures: list[str] = []
        for t in self.tiers:
            try:
                deleted = await t.delete(cache_key) or deleted
            except Exception as e:
                failures.append(f"{t.name}: {e}")
        if failures:
            return Error(_evict_error(cache_key, failures))
        return Ok(deleted)

    async def invalidate_pattern(self, pattern: str) -> Result[int, CacheError]:
        """Invalidate keys matching pattern in all tiers."""
        total = 0
        failures: list[str] = []
        for t in self.tiers:
            try:
                total += await t.delete_pattern(pattern)
            except Exception as e:
                failures.append(f"{t.name}: {e}")
        if failures:
            return Error(_evict_error(pattern, failures))
        return Ok(total)


def _evict_error(target: str, failures: list[str]) -> CacheError:
    return CacheError(CacheErrorKind.CONNECTION, f"evict {target}: " + "; ".join(failures))


# ═══════════════════════════════════════════════════════════════════════════════
# cache() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def cache[K, T, E](
    key: KeyFn[K],
    fetch: Callable[[K], LazyCoroResult[T, E]],
) -> Cache[K, T, E]:
    """
    Create cache builder with key function and fetch.

    Example:
        from checkout import cache as C

        executor = C.cache(make_key, fetch).tier(C.TTLTier(ttl=ttl)).build()
        result = await executor.get(request)
    """
    return Cache(
        _key_fn=key,
        _fetch=fetch,
        _tiers=(),
    )


__all__ = ("Cache", "CacheExecutor", "cache")
