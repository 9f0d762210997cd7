"""Pytest fixtures for checkout tests."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from checkout import Settings, build_services
from checkout.contrib.fastapi import create_app
from checkout.store import (
    CartItemTable,
    ChatOfferTable,
    CustomerGroupTable,
    DiscountRuleTable,
    OrderTable,
    ProductTable,
    PromoCodeTable,
    StatusLogTable,
    UserTable,
    create_database,
    seed_reference_data,
)

# Wednesday, noon: every seeded delivery window is open.
NOON = datetime(2025, 1, 1, 12, 0)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifications:
    def __init__(self) -> None:
        self.created = []
        self.changed = []

    async def order_created(self, order) -> None:
        self.created.append(order.number)

    async def status_changed(self, order, old, new) -> None:
        self.changed.append((order.number, old.code, new.code))


class Shop:
    """Inserts catalog, customer and cart rows."""

    def __init__(self, session_factory) -> None:
        self._session = session_factory

    async def _add(self, *rows) -> None:
        async with self._session() as session:
            session.add_all(rows)
            await session.commit()

    async def _count(self, stmt) -> int:
        async with self._session() as session:
            return (await session.execute(stmt)).scalar_one()

    async def product(
        self,
        id,
        price,
        *,
        stock=100,
        category_id=None,
        brand_id=None,
        is_active=True,
    ) -> None:
        await self._add(
            ProductTable(
                id=id,
                name=f"Part {id}",
                sku=f"SKU-{id}",
                price=Decimal(price),
                stock=stock,
                is_active=is_active,
                category_id=category_id,
                brand_id=brand_id,
            )
        )

    async def offer(self, id, price, *, is_active=True) -> None:
        await self._add(
            ChatOfferTable(id=id, name=f"Offer {id}", sku=f"CHAT-{id}", price=Decimal(price), is_active=is_active)
        )

    async def group(self, id, name, percent="0") -> None:
        await self._add(CustomerGroupTable(id=id, name=name, discount_percent=Decimal(percent)))

    async def user(self, id, *, personal="0", group_id=None, role="customer") -> None:
        await self._add(
            UserTable(
                id=id,
                name=f"User {id}",
                role=role,
                personal_discount=Decimal(personal),
                customer_group_id=group_id,
            )
        )

    async def rule(
        self,
        id,
        value,
        *,
        type="percentage",
        group_id=None,
        min_amount=None,
        max_discount=None,
        categories=None,
        brands=None,
        is_active=True,
        starts_at=None,
        ends_at=None,
    ) -> None:
        await self._add(
            DiscountRuleTable(
                id=id,
                name=f"Rule {id}",
                type=type,
                value=Decimal(value),
                min_amount=Decimal(min_amount) if min_amount is not None else None,
                max_discount=Decimal(max_discount) if max_discount is not None else None,
                categories=categories,
                brands=brands,
                is_active=is_active,
                starts_at=starts_at,
                ends_at=ends_at,
                customer_group_id=group_id,
            )
        )

    async def promo(
        self,
        code,
        rule_id,
        *,
        usage_limit=None,
        usage_count=0,
        expires_at=None,
        personal_user_id=None,
        is_active=True,
    ) -> str:
        promo_id = f"promo-{code.lower()}"
        await self._add(
            PromoCodeTable(
                id=promo_id,
                code=code,
                discount_rule_id=rule_id,
                is_active=is_active,
                expires_at=expires_at,
                usage_limit=usage_limit,
                usage_count=usage_count,
                personal_user_id=personal_user_id,
            )
        )
        return promo_id

    async def cart(self, user_id, *, product_id=None, offer_id=None, quantity=1, price) -> None:
        await self._add(
            CartItemTable(
                user_id=user_id,
                product_id=product_id,
                offer_id=offer_id,
                quantity=quantity,
                price=Decimal(price),
            )
        )

    async def stock(self, product_id) -> int:
        async with self._session() as session:
            return (await session.get(ProductTable, product_id)).stock

    async def promo_usage_count(self, code) -> int:
        stmt = select(PromoCodeTable.usage_count).where(PromoCodeTable.code == code)
        return await self._count(stmt)

    async def cart_size(self, user_id) -> int:
        return await self._count(select(func.count()).select_from(CartItemTable).where(CartItemTable.user_id == user_id))

    async def order_count(self) -> int:
        return await self._count(select(func.count()).select_from(OrderTable))

    async def log_count(self) -> int:
        return await self._count(select(func.count()).select_from(StatusLogTable))


@pytest.fixture
def clock():
    return FakeClock(NOON)


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
async def db():
    session_factory, engine = await create_database("sqlite+aiosqlite:///:memory:")
    await seed_reference_data(session_factory)
    yield session_factory
    await engine.dispose()


@pytest.fixture
def shop(db):
    return Shop(db)


@pytest.fixture
def services(db, settings, clock, notifications):
    return build_services(db, settings, clock=clock, notifications=notifications)


@pytest.fixture
def client(clock):
    """HTTP client over a fresh app whose user u1 has two parts in the cart."""

    async def prepare(session_factory):
        shop = Shop(session_factory)
        await shop.product("p1", "1000", stock=10)
        await shop.product("p2", "500", stock=10)
        await shop.cart("u1", product_id="p1", quantity=2, price="1000")
        await shop.cart("u1", product_id="p2", price="500")

    app = create_app(Settings(), prepare=prepare, clock=clock)
    with TestClient(app) as client:
        yield client
