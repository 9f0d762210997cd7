"""
Discount types — candidates, profiles, promo records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from checkout._items import AdHocItem, LineItem
from checkout._types import HUNDRED, Money, PromoCodeId, RuleId, UserId, ZERO

# ═══════════════════════════════════════════════════════════════════════════════
# Discount Kind — Priority Order
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountKind(Enum):
    """
    Source of a discount.

    Priority: PERSONAL > GROUP > PROMO, regardless of amount.
    """

    PERSONAL = "personal"
    GROUP = "group"
    PROMO = "promo"

    @property
    def priority(self) -> int:
        """Lower wins."""
        return _PRIORITY[self]


_PRIORITY = {DiscountKind.PERSONAL: 0, DiscountKind.GROUP: 1, DiscountKind.PROMO: 2}


# ═══════════════════════════════════════════════════════════════════════════════
# Discount Value — Percent | Fixed
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Percent:
    """Percent of the item subtotal, optionally capped in roubles."""

    value: Decimal
    cap: Money | None = None

    def __post_init__(self) -> None:
        if not ZERO <= self.value <= HUNDRED:
            raise ValueError(f"percent must be within 0..100, got {self.value}")
        if self.cap is not None and self.cap < ZERO:
            raise ValueError("cap must be >= 0")


@dataclass(frozen=True, slots=True)
class Fixed:
    """Fixed amount prorated over eligible items, optionally capped."""

    amount: Money
    cap: Money | None = None

    def __post_init__(self) -> None:
        if self.amount < ZERO:
            raise ValueError("fixed amount must be >= 0")
        if self.cap is not None and self.cap < ZERO:
            raise ValueError("cap must be >= 0")


type DiscountValue = Percent | Fixed


# ═══════════════════════════════════════════════════════════════════════════════
# Conditions
# ═══════════════════════════════════════════════════════════════════════════════

NOT_FROM_CHAT = "Discounts do not apply to items offered in chat"
NOT_IN_CATEGORY = "Item is not in a discounted category"
BRAND_EXCLUDED = "Item brand does not take part in the promotion"


@dataclass(frozen=True, slots=True)
class Conditions:
    """
    Eligibility conditions of a discount.

    Note: empty category/brand sets mean "no restriction".
    """

    min_cart_amount: Money | None = None
    category_ids: frozenset[str] = frozenset()
    brand_ids: frozenset[str] = frozenset()

    @property
    def restricted(self) -> bool:
        return bool(self.category_ids or self.brand_ids)

    def rejects(self, item: LineItem) -> str | None:
        """Reason the item gets no discount, or None when it is eligible."""
        if isinstance(item, AdHocItem):
            return NOT_FROM_CHAT
        if self.category_ids and item.category_id not in self.category_ids:
            return NOT_IN_CATEGORY
        if self.brand_ids and item.brand_id not in self.brand_ids:
            return BRAND_EXCLUDED
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# Discount Candidate
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DiscountCandidate:
    """
    A discount that may win for this cart. Computed per request, never stored.

    Example:
        DiscountCandidate(DiscountKind.GROUP, "Wholesale", Fixed(Decimal("500")))
    """

    kind: DiscountKind
    name: str
    value: DiscountValue
    conditions: Conditions = field(default_factory=Conditions)
    description: str | None = None
    rule_id: RuleId | None = None
    promo_code: str | None = None
    promo_id: PromoCodeId | None = None

    @property
    def percent(self) -> Decimal:
        match self.value:
            case Percent(value=p):
                return p
            case Fixed():
                return ZERO

    @property
    def fixed_amount(self) -> Money | None:
        match self.value:
            case Fixed(amount=a):
                return a
            case Percent():
                return None

    @property
    def cap(self) -> Money | None:
        return self.value.cap


# ═══════════════════════════════════════════════════════════════════════════════
# Discount Profile — What A Customer Is Entitled To
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GroupRule:
    """Extra discount rule of a customer group, active within an optional window."""

    id: RuleId
    name: str
    value: DiscountValue
    conditions: Conditions = field(default_factory=Conditions)
    is_active: bool = True
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    def covers(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.starts_at is not None and now < self.starts_at:
            return False
        if self.ends_at is not None and now > self.ends_at:
            return False
        return True


@dataclass(frozen=True, slots=True)
class DiscountProfile:
    user_id: UserId
    personal_percent: Decimal = ZERO
    group_name: str | None = None
    group_percent: Decimal = ZERO
    group_rules: tuple[GroupRule, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Promo Codes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PromoRecord:
    """
    Promo code as stored, plus whether the asking user already redeemed it.

    Note: `used_by_user` is resolved by the source for the user passed to
    `find_promo`, so validation stays a pure function.
    """

    id: PromoCodeId
    code: str
    rule_name: str
    value: DiscountValue
    conditions: Conditions = field(default_factory=Conditions)
    rule_id: RuleId | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    usage_limit: int | None = None
    usage_count: int = 0
    personal_user_id: UserId | None = None
    used_by_user: bool = False


@dataclass(frozen=True, slots=True)
class PromoRejection:
    """Why a promo code cannot be used. Never aborts a calculation."""

    code: str
    reason: str


# ═══════════════════════════════════════════════════════════════════════════════
# Resolution
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SkippedDiscount:
    """A discount that did not win, with the reason shown to the customer."""

    kind: DiscountKind
    name: str
    percent: Decimal
    fixed_amount: Money | None
    reason: str


@dataclass(frozen=True, slots=True)
class Resolution:
    winner: DiscountCandidate | None
    alternatives: tuple[SkippedDiscount, ...] = ()


__all__ = (
    "DiscountKind",
    "Percent",
    "Fixed",
    "DiscountValue",
    "Conditions",
    "DiscountCandidate",
    "GroupRule",
    "DiscountProfile",
    "PromoRecord",
    "PromoRejection",
    "SkippedDiscount",
    "Resolution",
    "NOT_FROM_CHAT",
    "NOT_IN_CATEGORY",
    "BRAND_EXCLUDED",
)
