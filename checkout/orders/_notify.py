"""
Post-commit work — notifications and payment links.

Runs after the order is committed. Failures are logged as DEPENDENCY errors
and never reach the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from checkout._errors import CheckoutError, Errors
from checkout.orders._types import Order, OrderStatus

logger = logging.getLogger(__name__)


class LoggingNotifications:
    """NotificationSink that writes to the log. SMS/email delivery is out of scope."""

    async def order_created(self, order: Order) -> None:
        logger.info(
            "Notify: order %s created for user %s, total %s",
            order.number,
            order.user_id,
            order.total_amount,
        )

    async def status_changed(self, order: Order, old: OrderStatus, new: OrderStatus) -> None:
        logger.info("Notify: order %s status %s -> %s", order.number, old.name, new.name)


class StaticPaymentLinks:
    """PaymentLinks built from a template such as `/payment/{order_id}`."""

    def __init__(self, template: str = "/payment/{order_id}") -> None:
        self._template = template

    def url_for(self, order: Order) -> str:
        return self._template.format(order_id=order.id, number=order.number)


async def best_effort[T](code: str, action: Callable[[], Awaitable[T]]) -> T | None:
    """Run post-commit `action`; on failure log a DEPENDENCY error and return None."""
    try:
        return await action()
    except Exception as e:
        error: CheckoutError = Errors.dependency(code, e)
        logger.warning("%s failed: %s (%s)", error.code, error.message, error.details["cause"], exc_info=e)
        return None


__all__ = ("LoggingNotifications", "StaticPaymentLinks", "best_effort")
