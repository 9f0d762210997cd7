"""
Promo codes — validation and cached lookups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from kungfu import LazyCoroResult, Result, Ok, Error

from checkout import cache as C
from checkout._types import Clock, Money, UserId, system_clock
from checkout.discount._types import (
    DiscountCandidate,
    DiscountKind,
    DiscountProfile,
    PromoRecord,
    PromoRejection,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Sources — Implemented By The Store
# ═══════════════════════════════════════════════════════════════════════════════


class PromoSource(Protocol):
    async def find_promo(self, code: str, user_id: UserId | None) -> PromoRecord | None:
        """Promo by normalised code; `used_by_user` resolved for `user_id`."""
        ...


class ProfileSource(Protocol):
    async def discount_profile(self, user_id: UserId) -> DiscountProfile | None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def normalize_code(code: str) -> str:
    return code.strip().upper()


def check_promo(
    record: PromoRecord | None,
    user_id: UserId | None,
    subtotal: Money,
    now: datetime,
) -> Result[DiscountCandidate, PromoRejection]:
    """
    Validate a promo code for this user and cart subtotal.

    Checks, in order: exists and active, not expired, usage limit, personal
    owner, already used by this user, minimum cart amount.
    """
    if record is None or not record.is_active:
        return Error(PromoRejection("PROMO_INVALID", "Promo code is invalid"))
    if record.expires_at is not None and record.expires_at < now:
        return Error(PromoRejection("PROMO_INVALID", "Promo code is invalid"))
    if record.usage_limit is not None and record.usage_count >= record.usage_limit:
        return Error(PromoRejection("PROMO_EXHAUSTED", "Promo code is no longer valid"))
    if record.personal_user_id is not None and record.personal_user_id != user_id:
        return Error(PromoRejection("PROMO_NOT_OWNED", "This promo code belongs to another customer"))
    if user_id is not None and record.used_by_user:
        return Error(PromoRejection("PROMO_ALREADY_USED", "You have already used this promo code"))
    minimum = record.conditions.min_cart_amount
    if minimum is not None and subtotal < minimum:
        return Error(
            PromoRejection("PROMO_MIN_AMOUNT", f"Minimum order amount for this promo code is {minimum} ₽")
        )

    return Ok(
        DiscountCandidate(
            kind=DiscountKind.PROMO,
            name=f"Promo code {record.code}",
            value=record.value,
            conditions=record.conditions,
            description=record.rule_name,
            rule_id=record.rule_id,
            promo_code=record.code,
            promo_id=record.id,
        )
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Validator — Read-Through Cache For Previews
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PromoQuery:
    code: str
    user_id: UserId | None
    subtotal: Money


def promo_key(query: PromoQuery) -> str:
    return f"promo:validate:{query.code}:{query.user_id or '-'}:{query.subtotal}"


class PromoValidator:
    """
    Validates promo codes against the store.

    With a cache tier, `validate(..., use_cache=True)` serves repeated cart
    previews from it; only accepted codes are cached. Checkout always calls
    with `use_cache=False` and re-reads the store.

    Example:
        validator = PromoValidator(catalog, tier=C.TTLTier(ttl=timedelta(seconds=60)))
        result = await validator.validate("SPRING", user_id, Decimal("4000"), use_cache=True)
    """

    def __init__(
        self,
        source: PromoSource,
        *,
        tier: C.Tier[DiscountCandidate] | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._source = source
        self._clock = clock
        self._cache: C.CacheExecutor[PromoQuery, DiscountCandidate, PromoRejection] | None = None
        if tier is not None:
            self._cache = C.cache(promo_key, self._fetch).tier(tier).build()

    def _fetch(self, query: PromoQuery) -> LazyCoroResult[DiscountCandidate, PromoRejection]:
        async def execute() -> Result[DiscountCandidate, PromoRejection]:
            record = await self._source.find_promo(query.code, query.user_id)
            return check_promo(record, query.user_id, query.subtotal, self._clock())

        return LazyCoroResult(execute)

    async def validate(
        self,
        code: str,
        user_id: UserId | None,
        subtotal: Money,
        *,
        use_cache: bool = False,
    ) -> Result[DiscountCandidate, PromoRejection]:
        query = PromoQuery(normalize_code(code), user_id, subtotal)

        if not use_cache or self._cache is None:
            result = await self._fetch(query)
        else:
            match await self._cache.get(query):
                case Ok(hit):
                    if hit.hit:
                        logger.debug("Promo %s served from %s cache", query.code, hit.tier)
                    result = Ok(hit.value)
                case Error(rejection):
                    result = Error(rejection)

        if isinstance(result, Error):
            logger.info("Promo %s rejected for user %s: %s", query.code, user_id, result.error.reason)
        return result

    async def invalidate(self, code: str) -> Result[int, C.CacheError]:
        """Drop every cached validation of `code`."""
        if self._cache is None:
            return Ok(0)
        return await self._cache.invalidate_pattern(f"promo:validate:{normalize_code(code)}:*")


__all__ = (
    "PromoSource",
    "ProfileSource",
    "normalize_code",
    "check_promo",
    "PromoQuery",
    "promo_key",
    "PromoValidator",
)
