"""
checkout.orders — Checkout transaction and order status machine.

Example:
    from checkout import orders as O

    match await checkout.create(user_id, O.CreateOrderRequest("city", "card")):
        case Ok(O.CreateOrderResult(order=order)):
            await machine.cancel(order.id, user_id)
"""

from checkout.orders._types import (
    OrderStatus,
    StatusLogEntry,
    DeliveryWindow,
    DeliveryMethod,
    PaymentMethod,
    ShippingQuote,
    shipping_quote,
    ShippingAddress,
    OrderItem,
    Order,
    NewOrder,
    NewOrderItem,
    CreateOrderRequest,
    CreateOrderResult,
    StatusChange,
    OrderFilters,
    OrderPage,
)
from checkout.orders._ports import (
    CartSource,
    ProfileSource,
    PromoSource,
    MethodSource,
    UnitOfWork,
    UnitOfWorkFactory,
    NotificationSink,
    PaymentLinks,
)
from checkout.orders._number import day_prefix, next_order_number, allocate_order_number, MAX_SEQUENCE
from checkout.orders._methods import check_delivery, check_payment
from checkout.orders._notify import LoggingNotifications, StaticPaymentLinks, best_effort
from checkout.orders._checkout import OrderCheckout, CREATED_COMMENT
from checkout.orders._status import OrderStatusMachine, CANCELLED_BY_CUSTOMER, MAX_PAGE_SIZE

__all__ = (
    # Types
    "OrderStatus",
    "StatusLogEntry",
    "DeliveryWindow",
    "DeliveryMethod",
    "PaymentMethod",
    "ShippingQuote",
    "shipping_quote",
    "ShippingAddress",
    "OrderItem",
    "Order",
    "NewOrder",
    "NewOrderItem",
    "CreateOrderRequest",
    "CreateOrderResult",
    "StatusChange",
    "OrderFilters",
    "OrderPage",
    # Ports
    "CartSource",
    "ProfileSource",
    "PromoSource",
    "MethodSource",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "NotificationSink",
    "PaymentLinks",
    # Numbering
    "day_prefix",
    "next_order_number",
    "allocate_order_number",
    "MAX_SEQUENCE",
    # Methods
    "check_delivery",
    "check_payment",
    # Post-commit
    "LoggingNotifications",
    "StaticPaymentLinks",
    "best_effort",
    # Services
    "OrderCheckout",
    "CREATED_COMMENT",
    "OrderStatusMachine",
    "CANCELLED_BY_CUSTOMER",
    "MAX_PAGE_SIZE",
)
