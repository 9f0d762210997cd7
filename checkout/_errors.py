"""
Checkout errors.

One exception type with a kind tag; factories on `Errors` keep messages
consistent between services and the HTTP adapter.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from enum import Enum, auto
from typing import Any


class ErrorKind(Enum):
    """Kinds of checkout errors."""

    VALIDATION = auto()  # Malformed request, rejected before any side effect
    NOT_FOUND = auto()  # Order, status, delivery or payment method missing
    CONFLICT = auto()  # Business rule violated (stock, promo, numbering, transition)
    PERMISSION = auto()  # Actor role insufficient
    DEPENDENCY = auto()  # Post-commit best-effort work failed; logged only


class CheckoutError(Exception):
    """
    Checkout operation error.

    Note: `details` carries the offending amounts/quantities so callers can
    explain the failure without parsing the message.
    """

    def __init__(
        self,
        kind: ErrorKind,
        code: str,
        message: str,
        details: Mapping[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message
        self.details: Mapping[str, Any] = dict(details or {})
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"CheckoutError({self.kind.name}, {self.code!r}, {self.message!r})"


# ═══════════════════════════════════════════════════════════════════════════════
# Factories
# ═══════════════════════════════════════════════════════════════════════════════


class Errors:
    @staticmethod
    def invalid(code: str, message: str, **details: Any) -> CheckoutError:
        return CheckoutError(ErrorKind.VALIDATION, code, message, details)

    @staticmethod
    def not_found(entity: str, ident: str) -> CheckoutError:
        return CheckoutError(
            ErrorKind.NOT_FOUND,
            f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            f"{entity.capitalize()} not found: {ident}",
            {"id": ident},
        )

    @staticmethod
    def conflict(code: str, message: str, **details: Any) -> CheckoutError:
        return CheckoutError(ErrorKind.CONFLICT, code, message, details)

    @staticmethod
    def forbidden(code: str, message: str) -> CheckoutError:
        return CheckoutError(ErrorKind.PERMISSION, code, message)

    @staticmethod
    def dependency(code: str, cause: Exception) -> CheckoutError:
        return CheckoutError(ErrorKind.DEPENDENCY, code, str(cause), {"cause": type(cause).__name__})

    @staticmethod
    def empty_cart() -> CheckoutError:
        return Errors.invalid("CART_EMPTY", "Cart is empty")

    @staticmethod
    def nothing_available() -> CheckoutError:
        return Errors.invalid("CART_UNAVAILABLE", "All items in the cart are unavailable")

    @staticmethod
    def below_minimum(minimum: Decimal, total: Decimal) -> CheckoutError:
        return Errors.conflict(
            "BELOW_MINIMUM_ORDER",
            f"Minimum order amount is {minimum} ₽, current total is {total} ₽",
            minimum=minimum,
            total=total,
        )

    @staticmethod
    def insufficient_stock(name: str, requested: int, available: int | None) -> CheckoutError:
        return Errors.conflict(
            "INSUFFICIENT_STOCK",
            f'Not enough "{name}" in stock: requested {requested}, available {available or 0}',
            product=name,
            requested=requested,
            available=available or 0,
        )

    @staticmethod
    def order_number_taken(number: str) -> CheckoutError:
        return CheckoutError(
            ErrorKind.CONFLICT,
            "ORDER_NUMBER_TAKEN",
            f"Order number {number} is already taken",
            {"number": number},
            retryable=True,
        )


__all__ = ("ErrorKind", "CheckoutError", "Errors")
