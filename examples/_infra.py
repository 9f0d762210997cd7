"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout.store import (
    CartItemTable,
    ChatOfferTable,
    CustomerGroupTable,
    DiscountRuleTable,
    ProductTable,
    PromoCodeTable,
    UserTable,
)


# Demo catalog
async def seed_demo(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Two customers, a wholesale group with a capped rule, a promo code and filled carts."""
    async with session_factory() as session:
        session.add_all(
            [
                ProductTable(id="brake-pads", name="Brake pads", sku="BP-100", price=Decimal("2000"),
                             stock=10, category_id="brakes", brand_id="bosch"),
                ProductTable(id="oil-filter", name="Oil filter", sku="OF-200", price=Decimal("3000"),
                             stock=3, category_id="filters", brand_id="mann"),
                ProductTable(id="spark-plug", name="Spark plug", sku="SP-300", price=Decimal("450"),
                             stock=50, category_id="ignition", brand_id="ngk"),
                ChatOfferTable(id="offer-turbo", name="Turbocharger (used)", sku="CHAT-1", price=Decimal("15000")),
                CustomerGroupTable(id="wholesale", name="Wholesale", discount_percent=Decimal("0")),
                DiscountRuleTable(id="wholesale-15", name="Wholesale 15%", type="percentage",
                                  value=Decimal("15"), max_discount=Decimal("1000"),
                                  customer_group_id="wholesale"),
                DiscountRuleTable(id="spring", name="Spring sale", type="fixed", value=Decimal("500"),
                                  min_amount=Decimal("3000")),
                PromoCodeTable(id="promo-spring", code="SPRING", discount_rule_id="spring", usage_limit=100),
                UserTable(id="alice", name="Alice"),
                UserTable(id="bob", name="Bob", customer_group_id="wholesale"),
                CartItemTable(user_id="alice", product_id="brake-pads", quantity=1, price=Decimal("2000")),
                CartItemTable(user_id="alice", product_id="oil-filter", quantity=1, price=Decimal("3000")),
                CartItemTable(user_id="bob", product_id="brake-pads", quantity=5, price=Decimal("2000")),
                CartItemTable(user_id="bob", offer_id="offer-turbo", quantity=1, price=Decimal("15000")),
            ]
        )
        await session.commit()


async def refill_cart(session_factory: async_sessionmaker[AsyncSession], user_id: str) -> None:
    async with session_factory() as session:
        session.add(CartItemTable(user_id=user_id, product_id="spark-plug", quantity=8, price=Decimal("450")))
        await session.commit()


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
