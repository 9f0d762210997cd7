"""
Cart line items.

A line is either a catalog product or a free-form offer made in chat.
Prices are snapshots taken when the line was added to the cart.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from checkout._errors import Errors
from checkout._types import Money, OfferId, ProductId, ZERO


@dataclass(frozen=True, slots=True)
class CatalogItem:
    """Cart line backed by a catalog product."""

    id: str
    product_id: ProductId
    name: str
    sku: str
    quantity: int
    price: Money
    available: bool = True
    category_id: str | None = None
    brand_id: str | None = None

    @property
    def total(self) -> Money:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class AdHocItem:
    """Cart line for an offer made by a manager in chat. Never discounted."""

    id: str
    offer_id: OfferId
    name: str
    sku: str
    quantity: int
    price: Money
    available: bool = True

    @property
    def total(self) -> Money:
        return self.price * self.quantity


type LineItem = CatalogItem | AdHocItem


def validate_lines(items: Iterable[LineItem]) -> None:
    """Raise VALIDATION error on non-positive quantity, negative price or a repeated line id."""
    seen: set[str] = set()
    for item in items:
        if item.quantity <= 0:
            raise Errors.invalid(
                "INVALID_QUANTITY",
                f'Quantity of "{item.name}" must be positive, got {item.quantity}',
                item_id=item.id,
                quantity=item.quantity,
            )
        if item.price < ZERO:
            raise Errors.invalid(
                "INVALID_PRICE",
                f'Price of "{item.name}" must not be negative',
                item_id=item.id,
                price=item.price,
            )
        if item.id in seen:
            raise Errors.invalid("DUPLICATE_LINE", f"Cart line {item.id} appears twice", item_id=item.id)
        seen.add(item.id)


__all__ = ("CatalogItem", "AdHocItem", "LineItem", "validate_lines")
