"""
Reference data — order statuses, delivery and payment methods.

Idempotent: rows are keyed by code and overwritten on re-run.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout.store._tables import Base, DeliveryMethodTable, OrderStatusTable, PaymentMethodTable

logger = logging.getLogger(__name__)

WEEKDAYS = [1, 2, 3, 4, 5, 6]

ORDER_STATUSES: list[dict[str, Any]] = [
    {"code": "new", "name": "New", "description": "Order created, awaiting processing",
     "is_initial": True, "can_cancel_order": True},
    {"code": "processing", "name": "Processing", "description": "Order accepted for work",
     "can_cancel_order": True},
    {"code": "confirmed", "name": "Confirmed", "description": "Order confirmed, awaiting payment"},
    {"code": "paid", "name": "Paid", "description": "Payment received"},
    {"code": "packing", "name": "Packing", "description": "Order is being packed at the warehouse"},
    {"code": "shipping", "name": "Shipping", "description": "Handed over to the carrier"},
    {"code": "delivering", "name": "Delivering", "description": "Order is on its way"},
    {"code": "completed", "name": "Completed", "description": "Delivered and received",
     "is_final_success": True},
    {"code": "cancelled", "name": "Cancelled", "description": "Order cancelled",
     "is_final_failure": True},
    {"code": "refunded", "name": "Refunded", "description": "Order returned",
     "is_final_failure": True},
]

DELIVERY_METHODS: list[dict[str, Any]] = [
    {"code": "pickup", "name": "Store pickup", "price": Decimal("0"),
     "description": "Mon-Fri 9:00-18:00, Sat 10:00-16:00"},
    {"code": "courier_city", "name": "Courier within the city", "price": Decimal("300"),
     "free_from": Decimal("3000"), "hour_from": 9, "hour_to": 21,
     "description": "2-4 hours"},
    {"code": "courier_region", "name": "Courier across the region", "price": Decimal("500"),
     "free_from": Decimal("5000"), "days": WEEKDAYS, "description": "1-2 days"},
    {"code": "transport_company", "name": "Transport company", "price": Decimal("800"),
     "free_from": Decimal("10000"), "description": "3-7 days"},
]

PAYMENT_METHODS: list[dict[str, Any]] = [
    {"code": "cash", "name": "Cash on delivery", "is_online": False, "max_amount": Decimal("50000")},
    {"code": "card_online", "name": "Card online", "is_online": True, "min_amount": Decimal("100")},
    {"code": "bank_transfer", "name": "Bank transfer", "is_online": False, "min_amount": Decimal("1000")},
    {"code": "sbp", "name": "Faster Payments System", "is_online": True, "max_amount": Decimal("100000")},
]


async def _upsert(session: AsyncSession, model: type[Base], rows: list[dict[str, Any]]) -> None:
    for order, data in enumerate(rows):
        values = {"id": data["code"], "sort_order": order, **data}
        existing = (
            await session.execute(select(model).where(model.code == data["code"]))  # type: ignore[attr-defined]
        ).scalar_one_or_none()
        if existing is None:
            session.add(model(**values))
        else:
            for key, value in values.items():
                if key != "id":
                    setattr(existing, key, value)


async def seed_reference_data(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """
    Install statuses and the default delivery/payment methods.

    Row ids equal their codes, e.g. status "new" or payment method "cash".
    """
    async with session_factory() as session:
        await _upsert(session, OrderStatusTable, ORDER_STATUSES)
        await _upsert(session, DeliveryMethodTable, DELIVERY_METHODS)
        await _upsert(session, PaymentMethodTable, PAYMENT_METHODS)
        await session.commit()
    logger.info(
        "Seeded %d statuses, %d delivery and %d payment methods",
        len(ORDER_STATUSES),
        len(DELIVERY_METHODS),
        len(PAYMENT_METHODS),
    )


__all__ = ("ORDER_STATUSES", "DELIVERY_METHODS", "PAYMENT_METHODS", "seed_reference_data")
