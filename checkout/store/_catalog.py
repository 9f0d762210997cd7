"""
Read-side adapter — carts, discount profiles, promo codes, methods.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, nullcontext

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout._items import AdHocItem, CatalogItem, LineItem
from checkout._types import UserId, ZERO
from checkout.discount import DiscountProfile, PromoRecord, normalize_code
from checkout.orders import DeliveryMethod, PaymentMethod
from checkout.store._db import shared_connection_lock
from checkout.store._convert import delivery_of, group_rule_of, payment_of, rule_conditions, rule_value
from checkout.store._tables import (
    CartItemTable,
    ChatOfferTable,
    CustomerGroupTable,
    DeliveryMethodTable,
    DiscountRuleTable,
    PaymentMethodTable,
    ProductTable,
    PromoCodeTable,
    PromoUsageTable,
    UserTable,
)


class SqlCatalog:
    """
    Implements CartSource, ProfileSource, PromoSource and MethodSource.

    Each call uses its own short session; nothing here writes.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session = session_factory

    @asynccontextmanager
    async def _read(self) -> AsyncIterator[AsyncSession]:
        async with shared_connection_lock(self._session) or nullcontext(), self._session() as session:
            yield session

    # ═══════════════════════════════════════════════════════════════════════════
    # Cart
    # ═══════════════════════════════════════════════════════════════════════════

    async def priced_cart(self, user_id: UserId) -> list[LineItem]:
        """
        Cart lines in insertion order.

        A product line is unavailable when the product is inactive or its
        stock is below the line quantity; an offer line when the offer is
        inactive.
        """
        stmt = (
            select(CartItemTable, ProductTable, ChatOfferTable)
            .outerjoin(ProductTable, ProductTable.id == CartItemTable.product_id)
            .outerjoin(ChatOfferTable, ChatOfferTable.id == CartItemTable.offer_id)
            .where(CartItemTable.user_id == user_id)
            .order_by(CartItemTable.id)
        )
        async with self._read() as session:
            rows = (await session.execute(stmt)).tuples().all()

        items: list[LineItem] = []
        for line, product, offer in rows:
            if product is not None:
                items.append(
                    CatalogItem(
                        id=str(line.id),
                        product_id=product.id,
                        name=product.name,
                        sku=product.sku,
                        quantity=line.quantity,
                        price=line.price,
                        available=product.is_active and product.stock >= line.quantity,
                        category_id=product.category_id,
                        brand_id=product.brand_id,
                    )
                )
            elif offer is not None:
                items.append(
                    AdHocItem(
                        id=str(line.id),
                        offer_id=offer.id,
                        name=offer.name,
                        sku=offer.sku,
                        quantity=line.quantity,
                        price=line.price,
                        available=offer.is_active,
                    )
                )
        return items

    # ═══════════════════════════════════════════════════════════════════════════
    # Discounts
    # ═══════════════════════════════════════════════════════════════════════════

    async def discount_profile(self, user_id: UserId) -> DiscountProfile | None:
        async with self._read() as session:
            user = await session.get(UserTable, user_id)
            if user is None:
                return None
            group = None
            rules: list[DiscountRuleTable] = []
            if user.customer_group_id is not None:
                group = await session.get(CustomerGroupTable, user.customer_group_id)
                rules = list(
                    (
                        await session.execute(
                            select(DiscountRuleTable)
                            .where(DiscountRuleTable.customer_group_id == user.customer_group_id)
                            .order_by(DiscountRuleTable.id)
                        )
                    ).scalars()
                )

        return DiscountProfile(
            user_id=user.id,
            personal_percent=user.personal_discount or ZERO,
            group_name=group.name if group else None,
            group_percent=group.discount_percent if group else ZERO,
            group_rules=tuple(group_rule_of(r) for r in rules),
        )

    async def find_promo(self, code: str, user_id: UserId | None) -> PromoRecord | None:
        stmt = (
            select(PromoCodeTable, DiscountRuleTable)
            .join(DiscountRuleTable, DiscountRuleTable.id == PromoCodeTable.discount_rule_id)
            .where(PromoCodeTable.code == normalize_code(code))
        )
        async with self._read() as session:
            found = (await session.execute(stmt)).tuples().first()
            if found is None:
                return None
            promo, rule = found
            used = False
            if user_id is not None:
                used = bool(
                    await session.scalar(
                        select(
                            exists().where(
                                PromoUsageTable.promo_code_id == promo.id,
                                PromoUsageTable.user_id == user_id,
                            )
                        )
                    )
                )

        return PromoRecord(
            id=promo.id,
            code=promo.code,
            rule_name=rule.name,
            value=rule_value(rule),
            conditions=rule_conditions(rule),
            rule_id=rule.id,
            is_active=promo.is_active,
            expires_at=promo.expires_at,
            usage_limit=promo.usage_limit,
            usage_count=promo.usage_count,
            personal_user_id=promo.personal_user_id,
            used_by_user=used,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Delivery & Payment
    # ═══════════════════════════════════════════════════════════════════════════

    async def delivery_method(self, method_id: str) -> DeliveryMethod | None:
        async with self._read() as session:
            row = await session.get(DeliveryMethodTable, method_id)
        return delivery_of(row) if row else None

    async def payment_method(self, method_id: str) -> PaymentMethod | None:
        async with self._read() as session:
            row = await session.get(PaymentMethodTable, method_id)
        return payment_of(row) if row else None

    async def delivery_methods(self) -> list[DeliveryMethod]:
        stmt = (
            select(DeliveryMethodTable)
            .where(DeliveryMethodTable.is_active.is_(True))
            .order_by(DeliveryMethodTable.sort_order)
        )
        async with self._read() as session:
            rows = list((await session.execute(stmt)).scalars())
        return [delivery_of(r) for r in rows]

    async def payment_methods(self) -> list[PaymentMethod]:
        stmt = (
            select(PaymentMethodTable)
            .where(PaymentMethodTable.is_active.is_(True))
            .order_by(PaymentMethodTable.sort_order)
        )
        async with self._read() as session:
            rows = list((await session.execute(stmt)).scalars())
        return [payment_of(r) for r in rows]


__all__ = ("SqlCatalog",)
