"""
Row → domain conversion.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from checkout.discount import Conditions, DiscountValue, Fixed, GroupRule, Percent
from checkout.orders import (
    DeliveryMethod,
    DeliveryWindow,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    ShippingAddress,
)
from checkout.store._tables import (
    DeliveryMethodTable,
    DiscountRuleTable,
    OrderItemTable,
    OrderStatusTable,
    OrderTable,
    PaymentMethodTable,
)

PERCENTAGE = "percentage"
FIXED = "fixed"


def status_of(row: OrderStatusTable) -> OrderStatus:
    return OrderStatus(
        id=row.id,
        code=row.code,
        name=row.name,
        is_initial=row.is_initial,
        is_final_success=row.is_final_success,
        is_final_failure=row.is_final_failure,
        can_cancel_order=row.can_cancel_order,
        is_active=row.is_active,
        sort_order=row.sort_order,
    )


def rule_value(row: DiscountRuleTable) -> DiscountValue:
    if row.type == PERCENTAGE:
        return Percent(row.value, cap=row.max_discount)
    if row.type == FIXED:
        return Fixed(row.value, cap=row.max_discount)
    raise ValueError(f"unknown discount rule type {row.type!r} on rule {row.id}")


def rule_conditions(row: DiscountRuleTable) -> Conditions:
    return Conditions(
        min_cart_amount=row.min_amount,
        category_ids=frozenset(row.categories or ()),
        brand_ids=frozenset(row.brands or ()),
    )


def group_rule_of(row: DiscountRuleTable) -> GroupRule:
    return GroupRule(
        id=row.id,
        name=row.name,
        value=rule_value(row),
        conditions=rule_conditions(row),
        is_active=row.is_active,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
    )


def delivery_of(row: DeliveryMethodTable) -> DeliveryMethod:
    window = None
    if row.hour_from is not None or row.days is not None:
        window = DeliveryWindow(
            hour_from=row.hour_from,
            hour_to=row.hour_to,
            days=frozenset(row.days) if row.days is not None else None,
        )
    return DeliveryMethod(
        id=row.id,
        code=row.code,
        name=row.name,
        price=row.price,
        free_from=row.free_from,
        is_active=row.is_active,
        window=window,
        description=row.description,
        sort_order=row.sort_order,
    )


def payment_of(row: PaymentMethodTable) -> PaymentMethod:
    return PaymentMethod(
        id=row.id,
        code=row.code,
        name=row.name,
        is_online=row.is_online,
        is_active=row.is_active,
        min_amount=row.min_amount,
        max_amount=row.max_amount,
        description=row.description,
        sort_order=row.sort_order,
    )


def address_to_json(address: ShippingAddress | None) -> dict[str, Any] | None:
    return asdict(address) if address is not None else None


def address_of(data: dict[str, Any] | None) -> ShippingAddress | None:
    return ShippingAddress(**data) if data is not None else None


def order_of(row: OrderTable, status: OrderStatusTable, items: list[OrderItemTable]) -> Order:
    return Order(
        id=row.id,
        number=row.number,
        user_id=row.user_id,
        status=status_of(status),
        subtotal=row.subtotal,
        discount_amount=row.discount_amount,
        shipping_amount=row.shipping_amount,
        total_amount=row.total_amount,
        delivery_method_id=row.delivery_method_id,
        payment_method_id=row.payment_method_id,
        shipping_address=address_of(row.shipping_address),
        comment=row.comment,
        promo_code_id=row.promo_code_id,
        items=tuple(
            OrderItem(
                id=str(i.id),
                product_id=i.product_id,
                offer_id=i.offer_id,
                name=i.name,
                sku=i.sku,
                quantity=i.quantity,
                price=i.price,
                discount_amount=i.discount_amount,
                total=i.total,
            )
            for i in items
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


__all__ = (
    "PERCENTAGE",
    "FIXED",
    "status_of",
    "rule_value",
    "rule_conditions",
    "group_rule_of",
    "delivery_of",
    "payment_of",
    "address_to_json",
    "address_of",
    "order_of",
)
