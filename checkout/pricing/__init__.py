"""
checkout.pricing — Line items, per-line discounts, cart calculation.

Example:
    from checkout import pricing as P

    priced = P.price_items(items, resolution.winner)
    calc = await P.CartCalculator(profiles, validator).calculate(user_id, items)
"""

from checkout._items import CatalogItem, AdHocItem, LineItem, validate_lines
from checkout.pricing._types import (
    ItemCalculation,
    PricedItems,
    AppliedDiscount,
    CartCalculation,
)
from checkout.pricing._calculate import price_items
from checkout.pricing._cart import CartCalculator, ALL_UNAVAILABLE

__all__ = (
    # Line items
    "CatalogItem",
    "AdHocItem",
    "LineItem",
    "validate_lines",
    # Results
    "ItemCalculation",
    "PricedItems",
    "AppliedDiscount",
    "CartCalculation",
    # Computation
    "price_items",
    "CartCalculator",
    "ALL_UNAVAILABLE",
)
