"""
Delivery and payment method checks done before any write.
"""

from __future__ import annotations

from datetime import datetime

from checkout._errors import Errors
from checkout._types import Money
from checkout.orders._types import DeliveryMethod, PaymentMethod


def check_delivery(method: DeliveryMethod | None, method_id: str, now: datetime) -> DeliveryMethod:
    """Method must exist, be active and be open at `now`."""
    if method is None or not method.is_active:
        raise Errors.not_found("delivery method", method_id)
    if method.window is not None and (reason := method.window.refuses(now)) is not None:
        raise Errors.conflict(
            "DELIVERY_UNAVAILABLE",
            f'Delivery method "{method.name}" is {reason}',
            method_id=method.id,
        )
    return method


def check_payment(method: PaymentMethod | None, method_id: str, amount: Money) -> PaymentMethod:
    """Method must exist, be active and accept `amount`."""
    if method is None or not method.is_active:
        raise Errors.not_found("payment method", method_id)
    if method.min_amount is not None and amount < method.min_amount:
        raise Errors.conflict(
            "PAYMENT_AMOUNT_TOO_LOW",
            f'Minimum amount for payment method "{method.name}" is {method.min_amount} ₽',
            method_id=method.id,
            minimum=method.min_amount,
            amount=amount,
        )
    if method.max_amount is not None and amount > method.max_amount:
        raise Errors.conflict(
            "PAYMENT_AMOUNT_TOO_HIGH",
            f'Maximum amount for payment method "{method.name}" is {method.max_amount} ₽',
            method_id=method.id,
            maximum=method.max_amount,
            amount=amount,
        )
    return method


__all__ = ("check_delivery", "check_payment")
