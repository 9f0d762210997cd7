"""
Core types for checkout.

Re-exports from kungfu + money helpers and identifier aliases.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR
from enum import Enum

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Identifiers
# ═══════════════════════════════════════════════════════════════════════════════

type UserId = str
type ProductId = str
type OfferId = str
type OrderId = str
type StatusId = str
type PromoCodeId = str
type RuleId = str

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Amount in roubles. Never a float."""

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def money(value: Decimal | int | str) -> Money:
    """Coerce to Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def floor_money(value: Decimal) -> Money:
    """Round down to whole roubles."""
    return value.to_integral_value(rounding=ROUND_FLOOR)


# ═══════════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], datetime]
"""Returns "now". Injected so tests can simulate days."""


def system_clock() -> datetime:
    return datetime.now()


# ═══════════════════════════════════════════════════════════════════════════════
# Roles
# ═══════════════════════════════════════════════════════════════════════════════


class Role(Enum):
    """Actor roles. ADMIN is the top-privilege role."""

    CUSTOMER = "customer"
    MANAGER = "manager"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        return self in (Role.MANAGER, Role.ADMIN)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Identifiers
    "UserId",
    "ProductId",
    "OfferId",
    "OrderId",
    "StatusId",
    "PromoCodeId",
    "RuleId",
    # Money
    "Money",
    "ZERO",
    "HUNDRED",
    "money",
    "floor_money",
    # Clock
    "Clock",
    "system_clock",
    # Roles
    "Role",
)
