"""Tests for the order checkout transaction."""

import asyncio
from datetime import datetime
from decimal import Decimal

from kungfu import Ok, Error

from checkout import ErrorKind, Role
from checkout.orders import (
    CREATED_COMMENT,
    CreateOrderRequest,
    OrderCheckout,
    ShippingAddress,
)
from checkout.pricing import CatalogItem
from checkout.store import SqlUnitOfWork, unit_of_work

ADDRESS = ShippingAddress(
    full_name="Ivan Petrov",
    phone="+79990000000",
    city="Kazan",
    street="Baumana",
    building="1",
)


def created(result):
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise AssertionError(f"checkout failed: {e!r}")


def failed(result):
    assert isinstance(result, Error), result
    return result.error


class StaleCart:
    """Cart read before another customer bought the stock."""

    def __init__(self, items):
        self._items = items

    async def priced_cart(self, user_id):
        return list(self._items)


class TestCreateOrder:
    async def test_creates_order(self, services, shop, notifications):
        await shop.product("p1", "1500", stock=5)
        await shop.product("p2", "700", stock=5)
        await shop.cart("u1", product_id="p1", quantity=2, price="1500")
        await shop.cart("u1", product_id="p2", price="700")

        result = created(
            await services.checkout.create(
                "u1", CreateOrderRequest("courier_city", "cash", ADDRESS, comment="Call first")
            )
        )
        order = result.order

        assert order.number == "250101-001"
        assert order.status.code == "new"
        assert order.subtotal == Decimal("3700")
        assert order.discount_amount == Decimal("0")
        assert order.shipping_amount == Decimal("0")
        assert order.total_amount == Decimal("3700")
        assert order.shipping_address == ADDRESS
        assert order.comment == "Call first"
        assert [(i.product_id, i.quantity) for i in order.items] == [("p1", 2), ("p2", 1)]
        assert result.payment_url is None

        assert await shop.stock("p1") == 3
        assert await shop.stock("p2") == 4
        assert await shop.cart_size("u1") == 0
        assert notifications.created == ["250101-001"]

    async def test_first_log_entry(self, services, shop):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", price="1000")

        order = created(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash"))).order

        match await services.statuses.history(order.id, "u1", Role.CUSTOMER):
            case Ok([entry]):
                assert entry.status.code == "new"
                assert entry.comment == CREATED_COMMENT
                assert entry.actor_id == "u1"
            case other:
                raise AssertionError(other)

    async def test_online_payment_gets_link(self, services, shop):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", price="1000")

        result = created(await services.checkout.create("u1", CreateOrderRequest("pickup", "card_online")))

        assert result.payment_url == f"/payment/{result.order.id}"

    async def test_shipping_added_below_free_threshold(self, services, shop):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", quantity=2, price="1000")

        order = created(await services.checkout.create("u1", CreateOrderRequest("courier_city", "cash"))).order

        assert order.shipping_amount == Decimal("300")
        assert order.total_amount == Decimal("2300")

    async def test_capped_group_discount_scenario(self, services, shop):
        await shop.group("g1", "Wholesale")
        await shop.rule("r1", "15", group_id="g1", max_discount="1000")
        await shop.user("u1", group_id="g1")
        await shop.product("p1", "10000")
        await shop.cart("u1", product_id="p1", price="10000")

        order = created(await services.checkout.create("u1", CreateOrderRequest("transport_company", "cash"))).order

        assert order.subtotal == Decimal("10000")
        assert order.discount_amount == Decimal("1000")
        # free shipping counts the discounted total
        assert order.shipping_amount == Decimal("800")
        assert order.total_amount == Decimal("9800")
        assert order.total_amount == order.subtotal - order.discount_amount + order.shipping_amount

    async def test_chat_offer_line(self, services, shop):
        await shop.offer("o1", "2500")
        await shop.cart("u1", offer_id="o1", price="2500")

        order = created(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash"))).order

        [line] = order.items
        assert line.product_id is None
        assert line.offer_id == "o1"
        assert line.total == Decimal("2500")

    async def test_unavailable_lines_are_left_out(self, services, shop):
        await shop.product("p1", "1000")
        await shop.product("p2", "1000", is_active=False)
        await shop.cart("u1", product_id="p1", price="1000")
        await shop.cart("u1", product_id="p2", price="1000")

        order = created(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash"))).order

        assert [i.product_id for i in order.items] == ["p1"]
        assert order.subtotal == Decimal("1000")


class TestPreconditions:
    async def test_empty_cart(self, services, shop):
        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash")))

        assert error.kind is ErrorKind.VALIDATION
        assert error.code == "CART_EMPTY"

    async def test_nothing_available(self, services, shop):
        await shop.product("p1", "1000", stock=0)
        await shop.cart("u1", product_id="p1", price="1000")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash")))

        assert error.kind is ErrorKind.VALIDATION
        assert error.code == "CART_UNAVAILABLE"

    async def test_below_minimum(self, services, shop):
        await shop.product("p1", "300")
        await shop.cart("u1", product_id="p1", price="300")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash")))

        assert error.kind is ErrorKind.CONFLICT
        assert error.code == "BELOW_MINIMUM_ORDER"
        assert await shop.order_count() == 0
        assert await shop.cart_size("u1") == 1

    async def test_minimum_counts_discounted_total(self, services, shop):
        await shop.user("u1", personal="50")
        await shop.product("p1", "800")
        await shop.cart("u1", product_id="p1", price="800")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash")))

        assert error.code == "BELOW_MINIMUM_ORDER"

    async def test_unknown_delivery_method(self, services, shop):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", price="1000")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("teleport", "cash")))

        assert error.kind is ErrorKind.NOT_FOUND
        assert error.code == "DELIVERY_METHOD_NOT_FOUND"

    async def test_unknown_payment_method(self, services, shop):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", price="1000")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "barter")))

        assert error.kind is ErrorKind.NOT_FOUND
        assert error.code == "PAYMENT_METHOD_NOT_FOUND"

    async def test_courier_outside_hours(self, services, shop, clock):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", price="1000")
        clock.now = datetime(2025, 1, 1, 23, 0)

        error = failed(await services.checkout.create("u1", CreateOrderRequest("courier_city", "cash")))

        assert error.kind is ErrorKind.CONFLICT
        assert error.code == "DELIVERY_UNAVAILABLE"

    async def test_regional_courier_on_sunday(self, services, shop, clock):
        await shop.product("p1", "1000")
        await shop.cart("u1", product_id="p1", price="1000")
        clock.now = datetime(2025, 1, 5, 12, 0)

        error = failed(await services.checkout.create("u1", CreateOrderRequest("courier_region", "cash")))

        assert error.code == "DELIVERY_UNAVAILABLE"
        assert "Sunday" in error.message

    async def test_payment_below_minimum(self, services, shop):
        await shop.product("p1", "800")
        await shop.cart("u1", product_id="p1", price="800")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "bank_transfer")))

        assert error.kind is ErrorKind.CONFLICT
        assert error.code == "PAYMENT_AMOUNT_TOO_LOW"

    async def test_payment_above_maximum(self, services, shop):
        await shop.product("p1", "60000")
        await shop.cart("u1", product_id="p1", price="60000")

        error = failed(await services.checkout.create("u1", CreateOrderRequest("pickup", "cash")))

        assert error.code == "PAYMENT_AMOUNT_TOO_HIGH"


class TestAtomicity:
    async def test_insufficient_stock_rolls_back_everything(self, services, shop, db, clock):
        await shop.product("p1", "1000", stock=10)
        await shop.product("p2", "500", stock=1)
        await shop.cart("u1", product_id="p1", quantity=2, price="1000")
        await shop.cart("u1", product_id="p2", quantity=5, price="500")
        stale = StaleCart(
            [
                CatalogItem("1", "p1", "Part p1", "SKU-p1", 2, Decimal("1000")),
                CatalogItem("2", "p2", "Part p2", "SKU-p2", 5, Decimal("500")),
            ]
        )
        checkout = OrderCheckout(
            unit_of_work(db),
            stale,
            services.calculator,
            services.catalog,
            settings=services.settings,
            clock=clock,
        )

        error = failed(await checkout.create("u1", CreateOrderRequest("pickup", "cash")))

        assert error.kind is ErrorKind.CONFLICT
        assert error.code == "INSUFFICIENT_STOCK"
        assert error.details == {"product": "Part p2", "requested": 5, "available": 1}
        assert await shop.stock("p1") == 10
        assert await shop.stock("p2") == 1
        assert await shop.order_count() == 0
        assert await shop.log_count() == 0
        assert await shop.cart_size("u1") == 2

    async def test_concurrent_failure_keeps_other_checkout(self, services, shop, db, clock):
        await shop.product("p1", "1000", stock=10)
        await shop.product("p2", "500", stock=1)
        await shop.cart("u1", product_id="p1", quantity=2, price="1000")
        stale = StaleCart([CatalogItem("9", "p2", "Part p2", "SKU-p2", 5, Decimal("500"))])
        failing = OrderCheckout(
            unit_of_work(db),
            stale,
            services.calculator,
            services.catalog,
            settings=services.settings,
            clock=clock,
        )
        request = CreateOrderRequest("pickup", "cash")

        good, bad = await asyncio.gather(
            services.checkout.create("u1", request),
            failing.create("u2", request),
        )

        order = created(good).order
        assert failed(bad).code == "INSUFFICIENT_STOCK"
        assert await shop.order_count() == 1
        assert await shop.stock("p1") == 8
        assert await shop.stock("p2") == 1
        assert await shop.cart_size("u1") == 0
        assert (await services.statuses.get(order.id, "u1", Role.CUSTOMER)).value.number == order.number

    async def test_units_of_work_do_not_share_a_transaction(self, shop, db):
        await shop.product("p1", "1000", stock=10)

        async def keep():
            async with SqlUnitOfWork(db) as uow:
                assert await uow.take_stock("p1", 1)
                await asyncio.sleep(0)
                await uow.commit()

        async def abandon():
            async with SqlUnitOfWork(db) as uow:
                assert await uow.take_stock("p1", 3)
                await asyncio.sleep(0)

        await asyncio.gather(keep(), abandon(), keep())

        assert await shop.stock("p1") == 8


class TestPromoRedemption:
    async def test_promo_applied_and_counted(self, services, shop):
        await shop.rule("r1", "10")
        await shop.promo("SPRING", "r1", usage_limit=10)
        await shop.product("p1", "2000")
        await shop.cart("u1", product_id="p1", price="2000")

        order = created(
            await services.checkout.create("u1", CreateOrderRequest("pickup", "cash", promo_code="spring"))
        ).order

        assert order.discount_amount == Decimal("200")
        assert order.promo_code_id == "promo-spring"
        assert await shop.promo_usage_count("SPRING") == 1

    async def test_promo_used_once_per_user(self, services, shop):
        await shop.rule("r1", "10")
        await shop.promo("SPRING", "r1")
        await shop.product("p1", "2000")
        request = CreateOrderRequest("pickup", "cash", promo_code="SPRING")

        await shop.cart("u1", product_id="p1", price="2000")
        created(await services.checkout.create("u1", request))

        await shop.cart("u1", product_id="p1", price="2000")
        match await services.calculate_cart("u1", "SPRING"):
            case Ok(calc):
                assert calc.applied_discount is None
                assert calc.available_discounts[0].reason == "You have already used this promo code"
            case Error(e):
                raise AssertionError(repr(e))

        second = created(await services.checkout.create("u1", request)).order

        assert second.discount_amount == Decimal("0")
        assert second.promo_code_id is None
        assert await shop.promo_usage_count("SPRING") == 1

    async def test_other_user_can_still_use_code(self, services, shop):
        await shop.rule("r1", "10")
        await shop.promo("SPRING", "r1")
        await shop.product("p1", "2000")
        request = CreateOrderRequest("pickup", "cash", promo_code="SPRING")

        for user in ("u1", "u2"):
            await shop.cart(user, product_id="p1", price="2000")
            order = created(await services.checkout.create(user, request)).order
            assert order.discount_amount == Decimal("200")

        assert await shop.promo_usage_count("SPRING") == 2

    async def test_redeem_refuses_second_use(self, shop, db):
        await shop.rule("r1", "10")
        promo_id = await shop.promo("SPRING", "r1")

        async with SqlUnitOfWork(db) as uow:
            assert await uow.redeem_promo(promo_id, "u1", "order-1")
            assert not await uow.redeem_promo(promo_id, "u1", "order-2")
            await uow.commit()

        assert await shop.promo_usage_count("SPRING") == 1

    async def test_redeem_respects_limit(self, shop, db):
        await shop.rule("r1", "10")
        promo_id = await shop.promo("LAST", "r1", usage_limit=1)

        async with SqlUnitOfWork(db) as uow:
            assert await uow.redeem_promo(promo_id, "u1", "order-1")
            assert not await uow.redeem_promo(promo_id, "u2", "order-2")
            await uow.commit()

        assert await shop.promo_usage_count("LAST") == 1

    async def test_exhausted_between_preview_and_write(self, services, shop, db, clock):
        await shop.rule("r1", "10")
        await shop.promo("LAST", "r1", usage_limit=1)
        await shop.product("p1", "2000")
        await shop.cart("u1", product_id="p1", price="2000")

        class ExhaustingUnitOfWork(SqlUnitOfWork):
            async def redeem_promo(self, promo_id, user_id, order_id):
                await super().redeem_promo(promo_id, "someone-else", "order-x")
                return await super().redeem_promo(promo_id, user_id, order_id)

        checkout = OrderCheckout(
            lambda: ExhaustingUnitOfWork(db),
            services.catalog,
            services.calculator,
            services.catalog,
            settings=services.settings,
            clock=clock,
        )

        error = failed(await checkout.create("u1", CreateOrderRequest("pickup", "cash", promo_code="LAST")))

        assert error.code == "PROMO_REDEMPTION_FAILED"
        assert await shop.order_count() == 0
        assert await shop.stock("p1") == 100
        assert await shop.promo_usage_count("LAST") == 0
