"""
Per-line discount computation.

Percent: floor(line subtotal * p / 100) per eligible line.
Fixed: floor(amount * line subtotal / eligible subtotal), remainder dropped.
Cap: if the sum exceeds the cap every line is rescaled by cap / sum (floored)
and the realized total is the cap itself.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from checkout._items import AdHocItem, CatalogItem, LineItem
from checkout._types import HUNDRED, Money, ZERO, floor_money
from checkout.discount._types import DiscountCandidate, Fixed, Percent
from checkout.pricing._types import ItemCalculation, PricedItems


def _row(
    item: LineItem,
    *,
    applied: bool = False,
    percent: Decimal = ZERO,
    discount: Money = ZERO,
    reason: str | None = None,
) -> ItemCalculation:
    subtotal = item.total
    match item:
        case CatalogItem(product_id=product_id):
            refs = (product_id, None)
        case AdHocItem(offer_id=offer_id):
            refs = (None, offer_id)
    return ItemCalculation(
        item_id=item.id,
        product_id=refs[0],
        offer_id=refs[1],
        name=item.name,
        sku=item.sku,
        quantity=item.quantity,
        price=item.price,
        subtotal=subtotal,
        has_discount=applied,
        discount_percent=percent,
        discount_amount=discount,
        total=subtotal - discount,
        not_applied_reason=reason,
    )


def price_items(items: Sequence[LineItem], discount: DiscountCandidate | None) -> PricedItems:
    """
    Apply the winning discount to available lines.

    Lines that fail the discount's conditions (chat offers, other categories
    or brands) keep their full price and carry the reason.

    Example:
        priced = price_items(items, resolution.winner)
        priced.total_discount  # Decimal
    """
    if discount is None:
        return PricedItems(rows=tuple(_row(i) for i in items), total_discount=ZERO)

    blocked = {i.id: discount.conditions.rejects(i) for i in items}
    eligible = [i for i in items if blocked[i.id] is None]

    amounts: dict[str, Money] = {}
    match discount.value:
        case Percent(value=p):
            for item in eligible:
                amounts[item.id] = floor_money(item.total * p / HUNDRED)
        case Fixed(amount=fixed):
            eligible_subtotal = sum((i.total for i in eligible), ZERO)
            for item in eligible:
                if eligible_subtotal <= ZERO:
                    amounts[item.id] = ZERO
                    continue
                share = floor_money(fixed * item.total / eligible_subtotal)
                amounts[item.id] = min(share, item.total)

    summed = sum(amounts.values(), ZERO)
    total_discount = summed
    capped = False
    cap = discount.cap
    if cap is not None and summed > cap:
        amounts = {k: floor_money(v * cap / summed) for k, v in amounts.items()}
        total_discount = cap
        capped = True

    rows = tuple(
        _row(item, applied=True, percent=discount.percent, discount=amounts[item.id])
        if blocked[item.id] is None
        else _row(item, reason=blocked[item.id])
        for item in items
    )
    return PricedItems(rows=rows, total_discount=total_discount, capped=capped)


__all__ = ("price_items",)
