"""
Ports — what checkout needs from the outside.

`checkout.store` implements all of them over SQLAlchemy. Tests and other
adapters may provide their own.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from types import TracebackType
from typing import Protocol, Self

from checkout._items import LineItem
from checkout._types import OrderId, ProductId, PromoCodeId, StatusId, UserId
from checkout.discount import ProfileSource, PromoSource
from checkout.orders._types import (
    DeliveryMethod,
    NewOrder,
    NewOrderItem,
    Order,
    OrderFilters,
    OrderStatus,
    PaymentMethod,
    StatusLogEntry,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Read Ports
# ═══════════════════════════════════════════════════════════════════════════════


class CartSource(Protocol):
    async def priced_cart(self, user_id: UserId) -> list[LineItem]:
        """Cart lines with availability already resolved."""
        ...


class MethodSource(Protocol):
    async def delivery_method(self, method_id: str) -> DeliveryMethod | None: ...

    async def payment_method(self, method_id: str) -> PaymentMethod | None: ...

    async def delivery_methods(self) -> list[DeliveryMethod]:
        """Active methods in display order."""
        ...

    async def payment_methods(self) -> list[PaymentMethod]:
        """Active methods in display order."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Unit Of Work — One Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class UnitOfWork(Protocol):
    """
    One database transaction.

    Nothing is visible to others until `commit()`. Leaving the `async with`
    block without committing rolls back.

    Example:
        async with begin() as uow:
            await uow.take_stock(product_id, 2)
            await uow.commit()
    """

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    # Statuses
    async def initial_status(self) -> OrderStatus | None: ...

    async def status(self, status_id: StatusId) -> OrderStatus | None: ...

    async def status_by_code(self, code: str) -> OrderStatus | None: ...

    async def statuses(self) -> list[OrderStatus]:
        """Active statuses in display order."""
        ...

    # Orders
    async def latest_order_number(self, prefix: str) -> str | None:
        """Greatest order number starting with `prefix`."""
        ...

    async def add_order(self, order: NewOrder) -> OrderId:
        """Insert order. Raises ORDER_NUMBER_TAKEN when the number exists."""
        ...

    async def add_item(self, order_id: OrderId, item: NewOrderItem) -> None: ...

    async def get_order(self, order_id: OrderId) -> Order | None: ...

    async def list_orders(self, filters: OrderFilters) -> tuple[list[Order], int]:
        """One page of matching orders, newest first, and the total match count."""
        ...

    async def set_status(self, order_id: OrderId, status_id: StatusId, at: datetime) -> None: ...

    async def append_log(
        self,
        order_id: OrderId,
        status_id: StatusId,
        actor_id: UserId | None,
        comment: str | None,
        at: datetime,
    ) -> None: ...

    async def history(self, order_id: OrderId) -> list[StatusLogEntry]:
        """Log entries, newest first."""
        ...

    # Stock
    async def take_stock(self, product_id: ProductId, quantity: int) -> bool:
        """Atomically decrement; False (and no change) when stock is short."""
        ...

    async def return_stock(self, product_id: ProductId, quantity: int) -> None: ...

    async def stock_level(self, product_id: ProductId) -> int | None: ...

    # Promo & cart
    async def redeem_promo(self, promo_id: PromoCodeId, user_id: UserId, order_id: OrderId) -> bool:
        """Count one use and record it; False when the limit is reached or the user already used it."""
        ...

    async def clear_cart(self, user_id: UserId) -> None: ...


type UnitOfWorkFactory = Callable[[], UnitOfWork]


# ═══════════════════════════════════════════════════════════════════════════════
# Post-Commit Ports
# ═══════════════════════════════════════════════════════════════════════════════


class NotificationSink(Protocol):
    async def order_created(self, order: Order) -> None: ...

    async def status_changed(self, order: Order, old: OrderStatus, new: OrderStatus) -> None: ...


class PaymentLinks(Protocol):
    def url_for(self, order: Order) -> str: ...


__all__ = (
    "CartSource",
    "ProfileSource",
    "PromoSource",
    "MethodSource",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "NotificationSink",
    "PaymentLinks",
)
