"""Tests for cart calculation."""

from datetime import datetime
from decimal import Decimal

from kungfu import Ok, Error

from checkout import ErrorKind
from checkout.discount import (
    Conditions,
    DiscountKind,
    DiscountProfile,
    GroupRule,
    Percent,
    PromoRecord,
    PromoValidator,
)
from checkout.pricing import ALL_UNAVAILABLE, AdHocItem, CartCalculator, CatalogItem

NOW = datetime(2025, 1, 1, 12, 0)


class Profiles:
    def __init__(self, *profiles):
        self._by_user = {p.user_id: p for p in profiles}

    async def discount_profile(self, user_id):
        return self._by_user.get(user_id)


class Promos:
    def __init__(self, *records):
        self._by_code = {r.code: r for r in records}

    async def find_promo(self, code, user_id):
        return self._by_code.get(code)


def item(id, price, quantity=1, available=True, category_id=None):
    return CatalogItem(
        id=id,
        product_id=f"p{id}",
        name=f"Part {id}",
        sku=f"SKU-{id}",
        quantity=quantity,
        price=Decimal(price),
        available=available,
        category_id=category_id,
    )


def calculator(*profiles, promos=()):
    return CartCalculator(Profiles(*profiles), PromoValidator(Promos(*promos), clock=lambda: NOW), clock=lambda: NOW)


def unwrap(result):
    match result:
        case Ok(calc):
            return calc
        case Error(e):
            raise AssertionError(f"unexpected error: {e!r}")


class TestAvailability:
    async def test_empty_cart(self):
        calc = unwrap(await calculator().calculate("u1", []))

        assert calc.items == ()
        assert calc.total == Decimal("0")
        assert calc.warnings == ()

    async def test_all_unavailable(self):
        calc = unwrap(await calculator().calculate("u1", [item("1", "1000", available=False)]))

        assert calc.items == ()
        assert calc.subtotal == Decimal("0")
        assert calc.warnings == (ALL_UNAVAILABLE,)

    async def test_unavailable_items_excluded(self):
        items = [item("1", "1000"), item("2", "5000", available=False)]

        calc = unwrap(await calculator().calculate("u1", items))

        assert [r.item_id for r in calc.items] == ["1"]
        assert calc.subtotal == Decimal("1000")
        assert calc.warnings == ("1 item(s) unavailable and excluded from the calculation",)


class TestDiscounts:
    async def test_group_discount_capped(self):
        profile = DiscountProfile(
            user_id="u1",
            group_rules=(GroupRule("r1", "Wholesale", Percent(Decimal("15"), cap=Decimal("1000"))),),
        )

        calc = unwrap(await calculator(profile).calculate("u1", [item("1", "10000")]))

        assert calc.subtotal == Decimal("10000")
        assert calc.total_discount == Decimal("1000")
        assert calc.total == Decimal("9000")
        assert calc.applied_discount.kind is DiscountKind.GROUP
        assert calc.applied_discount.total_amount == Decimal("1000")
        assert "Maximum discount limit applied: 1000 ₽" in calc.warnings

    async def test_personal_wins_over_promo(self):
        profile = DiscountProfile(user_id="u1", personal_percent=Decimal("5"))
        half = PromoRecord(id="promo-half", code="HALF", rule_name="Half price", value=Percent(Decimal("50")))

        calc = unwrap(await calculator(profile, promos=[half]).calculate("u1", [item("1", "2000")], "half"))

        assert calc.applied_discount.kind is DiscountKind.PERSONAL
        assert calc.total_discount == Decimal("100")
        [promo] = calc.available_discounts
        assert promo.kind is DiscountKind.PROMO
        assert promo.name == "Promo code HALF"

    async def test_applied_promo_carries_code(self):
        spring = PromoRecord(id="promo-spring", code="SPRING", rule_name="Spring sale", value=Percent(Decimal("10")))

        calc = unwrap(await calculator(promos=[spring]).calculate("u1", [item("1", "2000")], " spring "))

        applied = calc.applied_discount
        assert applied.kind is DiscountKind.PROMO
        assert applied.promo_code == "SPRING"
        assert applied.promo_id == "promo-spring"
        assert applied.description == "Spring sale"
        assert calc.total == Decimal("1800")

    async def test_unknown_promo_does_not_abort(self):
        calc = unwrap(await calculator().calculate("u1", [item("1", "2000")], "NOPE"))

        assert calc.applied_discount is None
        assert calc.total == Decimal("2000")
        [skipped] = calc.available_discounts
        assert skipped.reason == "Promo code is invalid"

    async def test_winner_worth_nothing_is_not_applied(self):
        profile = DiscountProfile(user_id="u1", personal_percent=Decimal("1"))

        calc = unwrap(await calculator(profile).calculate("u1", [item("1", "50")]))

        assert calc.applied_discount is None
        assert calc.total_discount == Decimal("0")
        assert calc.available_discounts[0].reason == "Discount does not apply to any item in the cart"

    async def test_restricted_discount_warns(self):
        profile = DiscountProfile(
            user_id="u1",
            group_rules=(
                GroupRule(
                    "r1",
                    "Brakes week",
                    Percent(Decimal("10")),
                    Conditions(category_ids=frozenset({"brakes"})),
                ),
            ),
        )
        items = [item("1", "1000", category_id="brakes"), item("2", "1000", category_id="oil")]

        calc = unwrap(await calculator(profile).calculate("u1", items))

        assert calc.total_discount == Decimal("100")
        assert "Discount applies only to items of certain categories or brands" in calc.warnings

    async def test_chat_offer_is_priced_without_discount(self):
        profile = DiscountProfile(user_id="u1", personal_percent=Decimal("10"))
        offer = AdHocItem(id="2", offer_id="o1", name="Turbo", sku="CHAT-1", quantity=1, price=Decimal("3000"))

        calc = unwrap(await calculator(profile).calculate("u1", [item("1", "1000"), offer]))

        assert calc.subtotal == Decimal("4000")
        assert calc.total_discount == Decimal("100")
        assert calc.total == Decimal("3900")

    async def test_total_invariant(self):
        profile = DiscountProfile(user_id="u1", group_name="Wholesale", group_percent=Decimal("7"))
        carts = [
            [item("1", "999")],
            [item("1", "1234.50", quantity=3), item("2", "17")],
            [item("1", "10", quantity=7), item("2", "0")],
        ]
        for items in carts:
            calc = unwrap(await calculator(profile).calculate("u1", items))
            assert calc.total == calc.subtotal - calc.total_discount
            assert Decimal("0") <= calc.total_discount <= calc.subtotal


class TestValidation:
    async def test_non_positive_quantity(self):
        result = await calculator().calculate("u1", [item("1", "1000", quantity=0)])

        assert isinstance(result, Error)
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.code == "INVALID_QUANTITY"

    async def test_duplicate_line(self):
        result = await calculator().calculate("u1", [item("1", "1000"), item("1", "500")])

        assert isinstance(result, Error)
        assert result.error.code == "DUPLICATE_LINE"
