"""
Order numbers — `YYMMDD-NNN`, sequence reset daily.

The read-latest-then-increment step is not serialized; the unique constraint
on the number catches collisions and checkout retries the whole write.
"""

from __future__ import annotations

from datetime import datetime

from checkout._errors import Errors
from checkout.orders._ports import UnitOfWork

MAX_SEQUENCE = 999


def day_prefix(now: datetime) -> str:
    return now.strftime("%y%m%d")


def next_order_number(prefix: str, latest: str | None) -> str:
    """
    Next number after `latest` for the day `prefix`.

    Example:
        next_order_number("250101", None)          # "250101-001"
        next_order_number("250101", "250101-041")  # "250101-042"
    """
    sequence = 1
    if latest is not None:
        sequence = int(latest[-3:]) + 1
    if sequence > MAX_SEQUENCE:
        raise Errors.conflict(
            "ORDER_SEQUENCE_EXHAUSTED",
            f"No order numbers left for {prefix}",
            prefix=prefix,
        )
    return f"{prefix}-{sequence:03d}"


async def allocate_order_number(uow: UnitOfWork, now: datetime) -> str:
    # Fixed width makes the lexicographic max the numeric max.
    prefix = day_prefix(now)
    return next_order_number(prefix, await uow.latest_order_number(prefix))


__all__ = ("day_prefix", "next_order_number", "allocate_order_number", "MAX_SEQUENCE")
