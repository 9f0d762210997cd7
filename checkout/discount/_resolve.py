"""
Discount resolution — one winner per cart.

Discounts never stack: the highest-priority eligible candidate wins, and
within a priority tier the one worth more at the current subtotal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from kungfu import Result, Ok, Error

from checkout._items import LineItem
from checkout._types import HUNDRED, Money, ZERO
from checkout.discount._types import (
    DiscountCandidate,
    DiscountKind,
    DiscountProfile,
    Fixed,
    Percent,
    PromoRejection,
    Resolution,
    SkippedDiscount,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Candidates
# ═══════════════════════════════════════════════════════════════════════════════


def candidates_for(profile: DiscountProfile | None, now: datetime) -> list[DiscountCandidate]:
    """
    Profile discounts in priority order: personal, group base, group rules.

    Group rules count only while active and within their date window.
    """
    if profile is None:
        return []

    found: list[DiscountCandidate] = []
    if profile.personal_percent > 0:
        found.append(
            DiscountCandidate(DiscountKind.PERSONAL, "Personal discount", Percent(profile.personal_percent))
        )
    if profile.group_percent > 0:
        found.append(
            DiscountCandidate(
                DiscountKind.GROUP,
                f'Group discount "{profile.group_name or "customers"}"',
                Percent(profile.group_percent),
            )
        )
    for rule in profile.group_rules:
        if not rule.covers(now):
            continue
        found.append(
            DiscountCandidate(
                DiscountKind.GROUP,
                rule.name,
                rule.value,
                rule.conditions,
                rule_id=rule.id,
            )
        )
    return found


def realized_value(candidate: DiscountCandidate, subtotal: Money) -> Money:
    """Amount the candidate is worth on `subtotal`, used to compare within a tier."""
    match candidate.value:
        case Percent(value=p, cap=cap):
            amount = subtotal * p / HUNDRED
        case Fixed(amount=a, cap=cap):
            amount = min(a, subtotal)
    if cap is not None:
        amount = min(amount, cap)
    return amount


# ═══════════════════════════════════════════════════════════════════════════════
# Resolve
# ═══════════════════════════════════════════════════════════════════════════════


def _blocker(candidate: DiscountCandidate, subtotal: Money, items: Sequence[LineItem]) -> str | None:
    conditions = candidate.conditions
    minimum = conditions.min_cart_amount
    if minimum is not None and subtotal < minimum:
        return f"Requires a minimum order amount of {minimum} ₽"
    if conditions.restricted and not any(conditions.rejects(i) is None for i in items):
        return "No items in the cart match the discount's categories or brands"
    return None


def _skipped(candidate: DiscountCandidate, reason: str) -> SkippedDiscount:
    return SkippedDiscount(
        kind=candidate.kind,
        name=candidate.name,
        percent=candidate.percent,
        fixed_amount=candidate.fixed_amount,
        reason=reason,
    )


def _outranked(candidate: DiscountCandidate, winner: DiscountCandidate) -> str:
    if candidate.kind == winner.kind:
        return "Another discount with a larger amount is applied"
    if winner.kind is DiscountKind.PERSONAL:
        return "A personal discount with higher priority is applied"
    return "A group discount with higher priority is applied"


def resolve(
    subtotal: Money,
    items: Sequence[LineItem],
    candidates: Sequence[DiscountCandidate],
    promo: Result[DiscountCandidate, PromoRejection] | None = None,
) -> Resolution:
    """
    Pick the single discount for a cart.

    `items` are the available lines only. A rejected promo is reported in
    `alternatives` with its rejection reason and never aborts resolution.

    Example:
        resolution = resolve(Decimal("4000"), items, candidates_for(profile, now))
        resolution.winner  # DiscountCandidate | None
    """
    pool = list(candidates)
    skipped: list[SkippedDiscount] = []

    match promo:
        case Ok(candidate):
            pool.append(candidate)
        case Error(rejection):
            skipped.append(
                SkippedDiscount(DiscountKind.PROMO, "Promo code", ZERO, None, rejection.reason)
            )
        case None:
            pass

    eligible: list[DiscountCandidate] = []
    for candidate in pool:
        reason = _blocker(candidate, subtotal, items)
        if reason is None:
            eligible.append(candidate)
        else:
            skipped.append(_skipped(candidate, reason))

    if not eligible:
        return Resolution(winner=None, alternatives=tuple(skipped))

    # Stable sort keeps input order on ties.
    ranked = sorted(eligible, key=lambda c: (c.kind.priority, -realized_value(c, subtotal)))
    winner = ranked[0]
    outranked = [_skipped(c, _outranked(c, winner)) for c in ranked[1:]]

    logger.debug(
        "Discount resolved: %s %r over %d other candidate(s)",
        winner.kind.value,
        winner.name,
        len(ranked) - 1,
    )
    return Resolution(winner=winner, alternatives=(*outranked, *skipped))


__all__ = ("candidates_for", "realized_value", "resolve")
