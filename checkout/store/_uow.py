"""
SQLAlchemy unit of work — one AsyncSession, one transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from types import TracebackType
from typing import Any, Self, cast

from sqlalchemy import ColumnElement, delete, exists, func, or_, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout._errors import Errors
from checkout._types import OrderId, ProductId, PromoCodeId, StatusId, UserId
from checkout.orders import (
    NewOrder,
    NewOrderItem,
    Order,
    OrderFilters,
    OrderStatus,
    StatusLogEntry,
    UnitOfWorkFactory,
)
from checkout.store._db import shared_connection_lock
from checkout.store._convert import address_to_json, order_of, status_of
from checkout.store._tables import (
    CartItemTable,
    OrderItemTable,
    OrderStatusTable,
    OrderTable,
    ProductTable,
    PromoCodeTable,
    PromoUsageTable,
    StatusLogTable,
)

logger = logging.getLogger(__name__)


class SqlUnitOfWork:
    """
    UnitOfWork over an AsyncSession.

    Example:
        async with SqlUnitOfWork(session_factory) as uow:
            await uow.take_stock("p-1", 2)
            await uow.commit()
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._committed = False
        self._lock = shared_connection_lock(session_factory)

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("SqlUnitOfWork used outside `async with`")
        return self._session

    async def __aenter__(self) -> Self:
        if self._lock is not None:
            await self._lock.acquire()
        self._session = self._session_factory()
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self.session
        try:
            if not self._committed:
                await session.rollback()
        finally:
            try:
                await session.close()
            finally:
                self._session = None
                if self._lock is not None:
                    self._lock.release()

    async def commit(self) -> None:
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        await self.session.rollback()

    # ═══════════════════════════════════════════════════════════════════════════
    # Statuses
    # ═══════════════════════════════════════════════════════════════════════════

    async def initial_status(self) -> OrderStatus | None:
        stmt = select(OrderStatusTable).where(
            OrderStatusTable.is_initial.is_(True),
            OrderStatusTable.is_active.is_(True),
        )
        row = (await self.session.execute(stmt)).scalars().first()
        return status_of(row) if row else None

    async def status(self, status_id: StatusId) -> OrderStatus | None:
        row = await self.session.get(OrderStatusTable, status_id)
        return status_of(row) if row else None

    async def status_by_code(self, code: str) -> OrderStatus | None:
        stmt = select(OrderStatusTable).where(OrderStatusTable.code == code)
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return status_of(row) if row else None

    async def statuses(self) -> list[OrderStatus]:
        stmt = (
            select(OrderStatusTable)
            .where(OrderStatusTable.is_active.is_(True))
            .order_by(OrderStatusTable.sort_order)
        )
        return [status_of(r) for r in (await self.session.execute(stmt)).scalars()]

    # ═══════════════════════════════════════════════════════════════════════════
    # Orders
    # ═══════════════════════════════════════════════════════════════════════════

    async def latest_order_number(self, prefix: str) -> str | None:
        stmt = (
            select(OrderTable.number)
            .where(OrderTable.number.like(f"{prefix}-%"))
            .order_by(OrderTable.number.desc())
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def add_order(self, order: NewOrder) -> OrderId:
        row = OrderTable(
            id=uuid.uuid4().hex,
            number=order.number,
            user_id=order.user_id,
            status_id=order.status_id,
            subtotal=order.subtotal,
            discount_amount=order.discount_amount,
            shipping_amount=order.shipping_amount,
            total_amount=order.total_amount,
            delivery_method_id=order.delivery_method_id,
            payment_method_id=order.payment_method_id,
            shipping_address=address_to_json(order.shipping_address),
            comment=order.comment,
            promo_code_id=order.promo_code_id,
            created_at=order.created_at,
            updated_at=order.created_at,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Only `number` is unique on orders; the id is a fresh uuid.
            raise Errors.order_number_taken(order.number) from e
        return row.id

    async def add_item(self, order_id: OrderId, item: NewOrderItem) -> None:
        self.session.add(
            OrderItemTable(
                order_id=order_id,
                product_id=item.product_id,
                offer_id=item.offer_id,
                name=item.name,
                sku=item.sku,
                quantity=item.quantity,
                price=item.price,
                discount_amount=item.discount_amount,
                total=item.total,
            )
        )
        await self.session.flush()

    async def get_order(self, order_id: OrderId) -> Order | None:
        session = self.session
        stmt = select(OrderTable).where(OrderTable.id == order_id).execution_options(populate_existing=True)
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._load(row)

    async def list_orders(self, filters: OrderFilters) -> tuple[list[Order], int]:
        conditions: list[ColumnElement[bool]] = []
        if filters.user_id is not None:
            conditions.append(OrderTable.user_id == filters.user_id)
        if filters.search:
            conditions.append(OrderTable.number.icontains(filters.search, autoescape=True))
        if filters.status_ids:
            conditions.append(OrderTable.status_id.in_(filters.status_ids))
        elif filters.status_id is not None:
            conditions.append(OrderTable.status_id == filters.status_id)
        if filters.date_from is not None:
            conditions.append(OrderTable.created_at >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(OrderTable.created_at <= filters.date_to)

        session = self.session
        total = await session.scalar(select(func.count()).select_from(OrderTable).where(*conditions))
        stmt = (
            select(OrderTable)
            .where(*conditions)
            .order_by(OrderTable.created_at.desc(), OrderTable.number.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        rows = (await session.execute(stmt)).scalars().all()
        return [await self._load(row) for row in rows], total or 0

    async def _load(self, row: OrderTable) -> Order:
        session = self.session
        status = await session.get(OrderStatusTable, row.status_id)
        if status is None:
            raise Errors.not_found("order status", row.status_id)
        items = (
            await session.execute(
                select(OrderItemTable).where(OrderItemTable.order_id == row.id).order_by(OrderItemTable.id)
            )
        ).scalars()
        return order_of(row, status, list(items))

    async def set_status(self, order_id: OrderId, status_id: StatusId, at: datetime) -> None:
        await self.session.execute(
            update(OrderTable)
            .where(OrderTable.id == order_id)
            .values(status_id=status_id, updated_at=at)
            .execution_options(synchronize_session=False)
        )

    async def append_log(
        self,
        order_id: OrderId,
        status_id: StatusId,
        actor_id: UserId | None,
        comment: str | None,
        at: datetime,
    ) -> None:
        self.session.add(
            StatusLogTable(
                order_id=order_id,
                status_id=status_id,
                actor_id=actor_id,
                comment=comment,
                created_at=at,
            )
        )
        await self.session.flush()

    async def history(self, order_id: OrderId) -> list[StatusLogEntry]:
        stmt = (
            select(StatusLogTable, OrderStatusTable)
            .join(OrderStatusTable, OrderStatusTable.id == StatusLogTable.status_id)
            .where(StatusLogTable.order_id == order_id)
            .order_by(StatusLogTable.created_at.desc(), StatusLogTable.id.desc())
        )
        return [
            StatusLogEntry(
                id=str(log.id),
                order_id=log.order_id,
                status=status_of(status),
                actor_id=log.actor_id,
                comment=log.comment,
                created_at=log.created_at,
            )
            for log, status in (await self.session.execute(stmt)).tuples()
        ]

    # ═══════════════════════════════════════════════════════════════════════════
    # Stock
    # ═══════════════════════════════════════════════════════════════════════════

    async def take_stock(self, product_id: ProductId, quantity: int) -> bool:
        stmt = (
            update(ProductTable)
            .where(ProductTable.id == product_id, ProductTable.stock >= quantity)
            .values(stock=ProductTable.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await self.session.execute(stmt))
        return cursor.rowcount == 1

    async def return_stock(self, product_id: ProductId, quantity: int) -> None:
        stmt = (
            update(ProductTable)
            .where(ProductTable.id == product_id)
            .values(stock=ProductTable.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await self.session.execute(stmt))
        if cursor.rowcount == 0:
            logger.warning("Stock not returned: product %s no longer exists", product_id)

    async def stock_level(self, product_id: ProductId) -> int | None:
        stmt = select(ProductTable.stock).where(ProductTable.id == product_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    # ═══════════════════════════════════════════════════════════════════════════
    # Promo & Cart
    # ═══════════════════════════════════════════════════════════════════════════

    async def redeem_promo(self, promo_id: PromoCodeId, user_id: UserId, order_id: OrderId) -> bool:
        session = self.session
        used = await session.scalar(
            select(
                exists().where(
                    PromoUsageTable.promo_code_id == promo_id,
                    PromoUsageTable.user_id == user_id,
                )
            )
        )
        if used:
            return False

        stmt = (
            update(PromoCodeTable)
            .where(
                PromoCodeTable.id == promo_id,
                or_(
                    PromoCodeTable.usage_limit.is_(None),
                    PromoCodeTable.usage_count < PromoCodeTable.usage_limit,
                ),
            )
            .values(usage_count=PromoCodeTable.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await session.execute(stmt))
        if cursor.rowcount != 1:
            return False

        session.add(PromoUsageTable(promo_code_id=promo_id, user_id=user_id, order_id=order_id))
        try:
            await session.flush()
        except IntegrityError:
            # Lost the race to a concurrent checkout by the same user.
            return False
        return True

    async def clear_cart(self, user_id: UserId) -> None:
        await self.session.execute(delete(CartItemTable).where(CartItemTable.user_id == user_id))


def unit_of_work(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWorkFactory:
    """Factory handed to services: each call opens a fresh unit of work."""
    return lambda: SqlUnitOfWork(session_factory)


__all__ = ("SqlUnitOfWork", "unit_of_work")
