"""
Database layer — SQLAlchemy models.

Note: money columns are Numeric; values come back as Decimal.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MONEY = Numeric(12, 2)
PERCENT = Numeric(5, 2)


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog & Customers
# ═══════════════════════════════════════════════════════════════════════════════


class ProductTable(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    category_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    brand_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)


class ChatOfferTable(Base):
    """Free-form product offered to a customer in chat."""

    __tablename__ = "chat_offers"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CustomerGroupTable(Base):
    __tablename__ = "customer_groups"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    discount_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))


class UserTable(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="customer")
    personal_discount: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))
    customer_group_id: Mapped[str | None] = mapped_column(
        ForeignKey("customer_groups.id"), nullable=True
    )


class DiscountRuleTable(Base):
    """
    Discount rule of a customer group or behind a promo code.

    Note: `type` is "percentage" or "fixed"; `max_discount` caps either.
    """

    __tablename__ = "discount_rules"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    min_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    max_discount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    categories: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    brands: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    customer_group_id: Mapped[str | None] = mapped_column(
        ForeignKey("customer_groups.id"), nullable=True, index=True
    )


class PromoCodeTable(Base):
    __tablename__ = "promo_codes"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    discount_rule_id: Mapped[str] = mapped_column(ForeignKey("discount_rules.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    personal_user_id: Mapped[str | None] = mapped_column(String(50), nullable=True)


class PromoUsageTable(Base):
    __tablename__ = "promo_code_usage"
    __table_args__ = (UniqueConstraint("promo_code_id", "user_id", name="uq_promo_usage_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    promo_code_id: Mapped[str] = mapped_column(ForeignKey("promo_codes.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    order_id: Mapped[str] = mapped_column(String(50), nullable=False)


class CartItemTable(Base):
    """Cart line. Exactly one of product_id / offer_id is set."""

    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    product_id: Mapped[str | None] = mapped_column(ForeignKey("products.id"), nullable=True)
    offer_id: Mapped[str | None] = mapped_column(ForeignKey("chat_offers.id"), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Reference Data
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatusTable(Base):
    __tablename__ = "order_statuses"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_initial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_final_success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_final_failure: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_cancel_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class DeliveryMethodTable(Base):
    __tablename__ = "delivery_methods"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    free_from: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    hour_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hour_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    days: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class PaymentMethodTable(Base):
    __tablename__ = "payment_methods"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    min_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    max_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status_id: Mapped[str] = mapped_column(ForeignKey("order_statuses.id"), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    shipping_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    delivery_method_id: Mapped[str] = mapped_column(ForeignKey("delivery_methods.id"), nullable=False)
    payment_method_id: Mapped[str] = mapped_column(ForeignKey("payment_methods.id"), nullable=False)
    shipping_address: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    promo_code_id: Mapped[str | None] = mapped_column(ForeignKey("promo_codes.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class OrderItemTable(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    product_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    offer_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)


class StatusLogTable(Base):
    """Append-only. Rows are never updated or deleted."""

    __tablename__ = "order_status_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    status_id: Mapped[str] = mapped_column(ForeignKey("order_statuses.id"), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


__all__ = (
    "Base",
    "ProductTable",
    "ChatOfferTable",
    "CustomerGroupTable",
    "UserTable",
    "DiscountRuleTable",
    "PromoCodeTable",
    "PromoUsageTable",
    "CartItemTable",
    "OrderStatusTable",
    "DeliveryMethodTable",
    "PaymentMethodTable",
    "OrderTable",
    "OrderItemTable",
    "StatusLogTable",
)
