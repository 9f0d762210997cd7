"""
checkout.store — SQLAlchemy persistence for checkout.

Example:
    from checkout import store

    session_factory, engine = await store.create_database(settings.database_url)
    await store.seed_reference_data(session_factory)

    begin = store.unit_of_work(session_factory)
    catalog = store.SqlCatalog(session_factory)
"""

from checkout.store._tables import (
    Base,
    ProductTable,
    ChatOfferTable,
    CustomerGroupTable,
    UserTable,
    DiscountRuleTable,
    PromoCodeTable,
    PromoUsageTable,
    CartItemTable,
    OrderStatusTable,
    DeliveryMethodTable,
    PaymentMethodTable,
    OrderTable,
    OrderItemTable,
    StatusLogTable,
)
from checkout.store._db import create_database
from checkout.store._uow import SqlUnitOfWork, unit_of_work
from checkout.store._catalog import SqlCatalog
from checkout.store._seed import (
    ORDER_STATUSES,
    DELIVERY_METHODS,
    PAYMENT_METHODS,
    seed_reference_data,
)

__all__ = (
    # Tables
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
    # Setup
    "create_database",
    "seed_reference_data",
    "ORDER_STATUSES",
    "DELIVERY_METHODS",
    "PAYMENT_METHODS",
    # Adapters
    "SqlUnitOfWork",
    "unit_of_work",
    "SqlCatalog",
)
