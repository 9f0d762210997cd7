"""Tests for discount candidates and single-winner resolution."""

from datetime import datetime
from decimal import Decimal

from kungfu import Ok, Error

from checkout.discount import (
    Conditions,
    DiscountCandidate,
    DiscountKind,
    DiscountProfile,
    Fixed,
    GroupRule,
    Percent,
    PromoRejection,
    candidates_for,
    realized_value,
    resolve,
)
from checkout._items import AdHocItem, CatalogItem

NOW = datetime(2025, 1, 1, 12, 0)


def item(id="1", price="1000", quantity=1, category_id=None, brand_id=None):
    return CatalogItem(
        id=id,
        product_id=f"p{id}",
        name=f"Part {id}",
        sku=f"SKU-{id}",
        quantity=quantity,
        price=Decimal(price),
        category_id=category_id,
        brand_id=brand_id,
    )


def personal(percent):
    return DiscountCandidate(DiscountKind.PERSONAL, "Personal discount", Percent(Decimal(percent)))


def group(name, value, conditions=Conditions()):
    return DiscountCandidate(DiscountKind.GROUP, name, value, conditions)


def promo(percent):
    return DiscountCandidate(
        DiscountKind.PROMO,
        "Promo code HALF",
        Percent(Decimal(percent)),
        promo_code="HALF",
        promo_id="promo-half",
    )


class TestPriority:
    def test_personal_beats_larger_promo(self):
        items = [item(price="2000")]
        resolution = resolve(Decimal("2000"), items, [personal("5")], Ok(promo("50")))

        assert resolution.winner.kind is DiscountKind.PERSONAL
        [skipped] = resolution.alternatives
        assert skipped.kind is DiscountKind.PROMO
        assert skipped.reason == "A personal discount with higher priority is applied"

    def test_group_beats_promo(self):
        items = [item(price="2000")]
        resolution = resolve(
            Decimal("2000"), items, [group("Wholesale", Percent(Decimal("3")))], Ok(promo("30"))
        )

        assert resolution.winner.kind is DiscountKind.GROUP
        assert resolution.alternatives[0].reason == "A group discount with higher priority is applied"

    def test_fixed_beats_percent_within_tier(self):
        items = [item(price="4000")]
        ten_percent = group("Wholesale", Percent(Decimal("10")))
        five_hundred = group("Spring sale", Fixed(Decimal("500")))

        resolution = resolve(Decimal("4000"), items, [ten_percent, five_hundred])

        assert resolution.winner is five_hundred
        [skipped] = resolution.alternatives
        assert skipped.name == "Wholesale"
        assert skipped.percent == Decimal("10")
        assert skipped.reason == "Another discount with a larger amount is applied"

    def test_cap_counts_when_comparing(self):
        items = [item(price="10000")]
        capped = group("Capped", Percent(Decimal("20"), cap=Decimal("300")))
        plain = group("Plain", Percent(Decimal("5")))

        resolution = resolve(Decimal("10000"), items, [capped, plain])

        assert resolution.winner is plain

    def test_tie_keeps_input_order(self):
        items = [item(price="1000")]
        first = group("First", Percent(Decimal("10")))
        second = group("Second", Fixed(Decimal("100")))

        assert resolve(Decimal("1000"), items, [first, second]).winner is first
        assert resolve(Decimal("1000"), items, [second, first]).winner is second

    def test_no_candidates(self):
        resolution = resolve(Decimal("1000"), [item()], [])
        assert resolution.winner is None
        assert resolution.alternatives == ()


class TestEligibility:
    def test_min_cart_amount_blocks(self):
        needs_5000 = group("Big cart", Percent(Decimal("10")), Conditions(min_cart_amount=Decimal("5000")))

        resolution = resolve(Decimal("4000"), [item(price="4000")], [needs_5000])

        assert resolution.winner is None
        [skipped] = resolution.alternatives
        assert skipped.reason == "Requires a minimum order amount of 5000 ₽"

    def test_blocked_candidate_lets_lower_tier_win(self):
        needs_5000 = group("Big cart", Percent(Decimal("10")), Conditions(min_cart_amount=Decimal("5000")))

        resolution = resolve(Decimal("4000"), [item(price="4000")], [needs_5000], Ok(promo("5")))

        assert resolution.winner.kind is DiscountKind.PROMO

    def test_category_restriction_without_matching_items(self):
        brakes_only = group("Brakes", Percent(Decimal("10")), Conditions(category_ids=frozenset({"brakes"})))
        items = [item(category_id="filters")]

        resolution = resolve(Decimal("1000"), items, [brakes_only])

        assert resolution.winner is None
        assert resolution.alternatives[0].reason == "No items in the cart match the discount's categories or brands"

    def test_chat_offers_never_satisfy_restrictions(self):
        brakes_only = group("Brakes", Percent(Decimal("10")), Conditions(category_ids=frozenset({"brakes"})))
        offer = AdHocItem(id="9", offer_id="o1", name="Offer", sku="CHAT-1", quantity=1, price=Decimal("900"))

        resolution = resolve(Decimal("900"), [offer], [brakes_only])

        assert resolution.winner is None

    def test_rejected_promo_is_reported_not_raised(self):
        rejection = PromoRejection("PROMO_INVALID", "Promo code is invalid")

        resolution = resolve(Decimal("1000"), [item()], [personal("5")], Error(rejection))

        assert resolution.winner.kind is DiscountKind.PERSONAL
        [skipped] = resolution.alternatives
        assert skipped.kind is DiscountKind.PROMO
        assert skipped.name == "Promo code"
        assert skipped.reason == "Promo code is invalid"


class TestCandidates:
    def test_profile_order_and_names(self):
        profile = DiscountProfile(
            user_id="u1",
            personal_percent=Decimal("5"),
            group_name="Wholesale",
            group_percent=Decimal("10"),
            group_rules=(GroupRule("r1", "Spring sale", Fixed(Decimal("500"))),),
        )

        found = candidates_for(profile, NOW)

        assert [c.kind for c in found] == [DiscountKind.PERSONAL, DiscountKind.GROUP, DiscountKind.GROUP]
        assert [c.name for c in found] == ["Personal discount", 'Group discount "Wholesale"', "Spring sale"]
        assert found[2].rule_id == "r1"

    def test_rules_outside_window_are_skipped(self):
        profile = DiscountProfile(
            user_id="u1",
            group_rules=(
                GroupRule("off", "Disabled", Percent(Decimal("5")), is_active=False),
                GroupRule("late", "Not started", Percent(Decimal("5")), starts_at=datetime(2025, 2, 1)),
                GroupRule("past", "Ended", Percent(Decimal("5")), ends_at=datetime(2024, 12, 31)),
                GroupRule("now", "Running", Percent(Decimal("5")), starts_at=datetime(2024, 12, 1)),
            ),
        )

        assert [c.rule_id for c in candidates_for(profile, NOW)] == ["now"]

    def test_no_profile(self):
        assert candidates_for(None, NOW) == []

    def test_realized_value(self):
        assert realized_value(group("a", Percent(Decimal("10"))), Decimal("4000")) == Decimal("400")
        assert realized_value(group("b", Fixed(Decimal("500"))), Decimal("300")) == Decimal("300")
        assert realized_value(group("c", Fixed(Decimal("500"), cap=Decimal("200"))), Decimal("4000")) == Decimal("200")
