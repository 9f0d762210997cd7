"""
Cart calculation — availability, discount resolution, pricing, warnings.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from kungfu import Result, Ok, Error

from checkout._errors import CheckoutError
from checkout._items import LineItem, validate_lines
from checkout._types import Clock, UserId, ZERO, system_clock
from checkout.discount import (
    PromoValidator,
    ProfileSource,
    SkippedDiscount,
    candidates_for,
    resolve,
)
from checkout.pricing._calculate import price_items
from checkout.pricing._types import AppliedDiscount, CartCalculation

logger = logging.getLogger(__name__)

ALL_UNAVAILABLE = "All items in the cart are unavailable"


class CartCalculator:
    """
    Prices a cart for preview and checkout.

    Example:
        calculator = CartCalculator(profiles, PromoValidator(promos, tier=tier))

        match await calculator.calculate(user_id, items, "SPRING", use_cache=True):
            case Ok(calc):
                calc.total
            case Error(e):
                e.code  # INVALID_QUANTITY, ...
    """

    def __init__(
        self,
        profiles: ProfileSource,
        promos: PromoValidator,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self._profiles = profiles
        self._promos = promos
        self._clock = clock

    async def calculate(
        self,
        user_id: UserId | None,
        items: Sequence[LineItem],
        promo_code: str | None = None,
        *,
        use_cache: bool = False,
    ) -> Result[CartCalculation, CheckoutError]:
        try:
            validate_lines(items)
        except CheckoutError as e:
            return Error(e)

        if not items:
            return Ok(CartCalculation.empty())
        available = [i for i in items if i.available]
        if not available:
            return Ok(CartCalculation.empty(ALL_UNAVAILABLE))

        subtotal = sum((i.total for i in available), ZERO)
        now = self._clock()

        profile = await self._profiles.discount_profile(user_id) if user_id is not None else None
        promo = None
        if promo_code:
            promo = await self._promos.validate(promo_code, user_id, subtotal, use_cache=use_cache)

        resolution = resolve(subtotal, available, candidates_for(profile, now), promo)
        winner = resolution.winner
        priced = price_items(available, winner)

        applied = None
        alternatives = list(resolution.alternatives)
        if winner is not None and priced.total_discount > ZERO:
            applied = AppliedDiscount.of(winner, priced.total_discount)
        elif winner is not None:
            alternatives.insert(
                0,
                SkippedDiscount(
                    kind=winner.kind,
                    name=winner.name,
                    percent=winner.percent,
                    fixed_amount=winner.fixed_amount,
                    reason="Discount does not apply to any item in the cart",
                ),
            )

        warnings: list[str] = []
        if unavailable := len(items) - len(available):
            warnings.append(f"{unavailable} item(s) unavailable and excluded from the calculation")
        if priced.capped and winner is not None:
            warnings.append(f"Maximum discount limit applied: {winner.cap} ₽")
        if winner is not None and winner.conditions.restricted:
            warnings.append("Discount applies only to items of certain categories or brands")

        return Ok(
            CartCalculation(
                items=priced.rows,
                subtotal=subtotal,
                applied_discount=applied,
                total_discount=priced.total_discount,
                total=subtotal - priced.total_discount,
                available_discounts=tuple(alternatives),
                warnings=tuple(warnings),
            )
        )


__all__ = ("CartCalculator", "ALL_UNAVAILABLE")
