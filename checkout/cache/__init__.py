"""
checkout.cache — Read-through caching with tiers.

Example:
    from checkout import cache as C

    executor = (
        C.cache(lambda req: f"promo:{req.code}", fetch_promo)
        .tier(C.TTLTier(ttl=timedelta(seconds=60)))
        .build()
    )

    match await executor.get(request):
        case Ok(C.CacheResult(value=v, hit=True)):
            ...
"""

from checkout.cache._types import (
    Tier,
    TTLTier,
    CacheResult,
    CacheError,
    CacheErrorKind,
)
from checkout.cache._builder import Cache, CacheExecutor, cache

__all__ = (
    "Tier",
    "TTLTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
    "Cache",
    "CacheExecutor",
    "cache",
)
