"""
Order domain types.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from checkout._types import (
    Money,
    OfferId,
    OrderId,
    ProductId,
    PromoCodeId,
    Role,
    StatusId,
    UserId,
    ZERO,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Statuses
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderStatus:
    """
    Order status reference row.

    Terminal: `is_final_success` or `is_final_failure`. Non-admin actors
    cannot leave a terminal status.
    """

    id: StatusId
    code: str
    name: str
    is_initial: bool = False
    is_final_success: bool = False
    is_final_failure: bool = False
    can_cancel_order: bool = False
    is_active: bool = True
    sort_order: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.is_final_success or self.is_final_failure


@dataclass(frozen=True, slots=True)
class StatusLogEntry:
    """Append-only audit record of a status change."""

    id: str
    order_id: OrderId
    status: OrderStatus
    actor_id: UserId | None
    comment: str | None
    created_at: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Delivery & Payment Methods
# ═══════════════════════════════════════════════════════════════════════════════

_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True, slots=True)
class DeliveryWindow:
    """
    When a delivery method may be chosen.

    Hours are inclusive: `hour_from=9, hour_to=21` allows 9:00 through 21:59.
    Days use 0 = Sunday … 6 = Saturday; `None` means every day.
    """

    hour_from: int | None = None
    hour_to: int | None = None
    days: frozenset[int] | None = None

    def refuses(self, now: datetime) -> str | None:
        """Reason the window is closed at `now`, or None when open."""
        if self.hour_from is not None and self.hour_to is not None:
            if not self.hour_from <= now.hour <= self.hour_to:
                return f"available only from {self.hour_from}:00 to {self.hour_to}:00"
        if self.days is not None:
            weekday = (now.weekday() + 1) % 7
            if weekday not in self.days:
                return f"not available on {_DAY_NAMES[weekday]}"
        return None


@dataclass(frozen=True, slots=True)
class DeliveryMethod:
    id: str
    code: str
    name: str
    price: Money
    free_from: Money | None = None
    is_active: bool = True
    window: DeliveryWindow | None = None
    description: str | None = None
    sort_order: int = 0

    def shipping_for(self, amount: Money) -> Money:
        """Free when a threshold is set and reached."""
        if self.free_from is not None and amount >= self.free_from:
            return ZERO
        return self.price


@dataclass(frozen=True, slots=True)
class PaymentMethod:
    id: str
    code: str
    name: str
    is_online: bool = False
    is_active: bool = True
    min_amount: Money | None = None
    max_amount: Money | None = None
    description: str | None = None
    sort_order: int = 0

    def accepts(self, amount: Money) -> bool:
        if self.min_amount is not None and amount < self.min_amount:
            return False
        if self.max_amount is not None and amount > self.max_amount:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ShippingQuote:
    method_id: str
    name: str
    base_price: Money
    price: Money
    is_free: bool
    free_from: Money | None = None
    amount_to_free: Money | None = None


def shipping_quote(method: DeliveryMethod, amount: Money) -> ShippingQuote:
    """
    Shipping cost of `method` for an order of `amount`.

    Example:
        shipping_quote(city, Decimal("2500")).amount_to_free  # Decimal("500")
    """
    price = method.shipping_for(amount)
    is_free = method.free_from is not None and amount >= method.free_from
    to_free = None
    if method.free_from is not None and not is_free:
        to_free = max(ZERO, method.free_from - amount)
    return ShippingQuote(
        method_id=method.id,
        name=method.name,
        base_price=method.price,
        price=price,
        is_free=is_free,
        free_from=method.free_from,
        amount_to_free=to_free,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShippingAddress:
    full_name: str
    phone: str
    city: str
    street: str
    building: str
    email: str | None = None
    apartment: str | None = None
    postal_code: str | None = None
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class OrderItem:
    """
    Purchased line, immutable once created.

    Exactly one of `product_id` / `offer_id` is set. Line discounts are
    floored, so under a capped discount they can sum to less than the
    order's `discount_amount` by at most one unit per line beyond the first.
    """

    id: str
    product_id: ProductId | None
    offer_id: OfferId | None
    name: str
    sku: str
    quantity: int
    price: Money
    discount_amount: Money
    total: Money


@dataclass(frozen=True, slots=True)
class Order:
    """
    Persisted order.

    Invariant: `total_amount == subtotal - discount_amount + shipping_amount`.
    """

    id: OrderId
    number: str
    user_id: UserId
    status: OrderStatus
    subtotal: Money
    discount_amount: Money
    shipping_amount: Money
    total_amount: Money
    delivery_method_id: str
    payment_method_id: str
    shipping_address: ShippingAddress | None
    comment: str | None
    promo_code_id: PromoCodeId | None
    items: tuple[OrderItem, ...]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class NewOrder:
    """Order row to insert. The store assigns the id."""

    number: str
    user_id: UserId
    status_id: StatusId
    subtotal: Money
    discount_amount: Money
    shipping_amount: Money
    total_amount: Money
    delivery_method_id: str
    payment_method_id: str
    shipping_address: ShippingAddress | None
    comment: str | None
    promo_code_id: PromoCodeId | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class NewOrderItem:
    product_id: ProductId | None
    offer_id: OfferId | None
    name: str
    sku: str
    quantity: int
    price: Money
    discount_amount: Money
    total: Money


# ═══════════════════════════════════════════════════════════════════════════════
# Requests / Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CreateOrderRequest:
    delivery_method_id: str
    payment_method_id: str
    shipping_address: ShippingAddress | None = None
    promo_code: str | None = None
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class CreateOrderResult:
    order: Order
    payment_url: str | None = None


@dataclass(frozen=True, slots=True)
class StatusChange:
    order_id: OrderId
    status_id: StatusId
    actor_id: UserId
    actor_role: Role
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class OrderFilters:
    """
    Order list query.

    `status_ids` wins over `status_id` when both are given. Date bounds are
    inclusive and compare against `created_at`.
    """

    page: int = 1
    limit: int = 20
    search: str | None = None
    status_id: StatusId | None = None
    status_ids: tuple[StatusId, ...] = ()
    user_id: UserId | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class OrderPage:
    """One page of orders, newest first."""

    items: tuple[Order, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


__all__ = (
    "OrderStatus",
    "StatusLogEntry",
    "DeliveryWindow",
    "DeliveryMethod",
    "PaymentMethod",
    "ShippingQuote",
    "shipping_quote",
    "ShippingAddress",
    "OrderItem",
    "Order",
    "NewOrder",
    "NewOrderItem",
    "CreateOrderRequest",
    "CreateOrderResult",
    "StatusChange",
    "OrderFilters",
    "OrderPage",
)
