"""
checkout.discount — Discount candidates and single-winner resolution.

Priority: PERSONAL > GROUP > PROMO. Within a tier the larger realized amount
wins. Discounts never stack.

Example:
    from checkout import discount as D

    candidates = D.candidates_for(profile, now)
    promo = await validator.validate("SPRING", user_id, subtotal)
    resolution = D.resolve(subtotal, items, candidates, promo)
"""

from checkout.discount._types import (
    DiscountKind,
    Percent,
    Fixed,
    DiscountValue,
    Conditions,
    DiscountCandidate,
    GroupRule,
    DiscountProfile,
    PromoRecord,
    PromoRejection,
    SkippedDiscount,
    Resolution,
)
from checkout.discount._resolve import candidates_for, realized_value, resolve
from checkout.discount._promo import (
    PromoSource,
    ProfileSource,
    normalize_code,
    check_promo,
    PromoQuery,
    promo_key,
    PromoValidator,
)

__all__ = (
    # Types
    "DiscountKind",
    "Percent",
    "Fixed",
    "DiscountValue",
    "Conditions",
    "DiscountCandidate",
    "GroupRule",
    "DiscountProfile",
    "PromoRecord",
    "PromoRejection",
    "SkippedDiscount",
    "Resolution",
    # Resolution
    "candidates_for",
    "realized_value",
    "resolve",
    # Promo codes
    "PromoSource",
    "ProfileSource",
    "normalize_code",
    "check_promo",
    "PromoQuery",
    "promo_key",
    "PromoValidator",
)
