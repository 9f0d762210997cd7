"""
Pricing types — per-line rows and cart calculation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from checkout._types import Money, OfferId, ProductId, PromoCodeId, RuleId, ZERO
from checkout.discount._types import DiscountCandidate, DiscountKind, SkippedDiscount


@dataclass(frozen=True, slots=True)
class ItemCalculation:
    """
    One priced line.

    `total = subtotal - discount_amount`. `not_applied_reason` is set when a
    discount won but this line was not eligible for it.

    Under a cap each line's share is floored while the cart's
    `total_discount` equals the cap, so line discounts may sum to less than
    it by at most one unit per line beyond the first.
    """

    item_id: str
    product_id: ProductId | None
    offer_id: OfferId | None
    name: str
    sku: str
    quantity: int
    price: Money
    subtotal: Money
    has_discount: bool
    discount_percent: Decimal
    discount_amount: Money
    total: Money
    not_applied_reason: str | None = None


@dataclass(frozen=True, slots=True)
class PricedItems:
    rows: tuple[ItemCalculation, ...]
    total_discount: Money
    capped: bool = False


@dataclass(frozen=True, slots=True)
class AppliedDiscount:
    """The winning discount and the amount actually deducted."""

    kind: DiscountKind
    name: str
    description: str | None
    percent: Decimal
    fixed_amount: Money | None
    total_amount: Money
    rule_id: RuleId | None = None
    promo_code: str | None = None
    promo_id: PromoCodeId | None = None

    @classmethod
    def of(cls, candidate: DiscountCandidate, total_amount: Money) -> AppliedDiscount:
        return cls(
            kind=candidate.kind,
            name=candidate.name,
            description=candidate.description,
            percent=candidate.percent,
            fixed_amount=candidate.fixed_amount,
            total_amount=total_amount,
            rule_id=candidate.rule_id,
            promo_code=candidate.promo_code,
            promo_id=candidate.promo_id,
        )


@dataclass(frozen=True, slots=True)
class CartCalculation:
    """
    Priced cart.

    Invariant: `total == subtotal - total_discount` and
    `total_discount <= subtotal`. Shipping is added at checkout.
    """

    items: tuple[ItemCalculation, ...]
    subtotal: Money
    applied_discount: AppliedDiscount | None
    total_discount: Money
    total: Money
    available_discounts: tuple[SkippedDiscount, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def empty(cls, *warnings: str) -> CartCalculation:
        return cls(
            items=(),
            subtotal=ZERO,
            applied_discount=None,
            total_discount=ZERO,
            total=ZERO,
            warnings=warnings,
        )


__all__ = ("ItemCalculation", "PricedItems", "AppliedDiscount", "CartCalculation")
