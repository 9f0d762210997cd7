"""
checkout — pricing and checkout engine for the storefront.

    from checkout import discount as D  # Discount resolution, promo codes
    from checkout import pricing as P   # Cart calculation
    from checkout import orders as O    # Checkout, order numbers, statuses
    from checkout import store          # SQLAlchemy adapters
"""

from checkout import cache
from checkout import discount
from checkout import pricing
from checkout import orders
from checkout import store
from checkout._types import (
    Result,
    Ok,
    Error,
    Money,
    Role,
    Clock,
    money,
)
from checkout._errors import ErrorKind, CheckoutError, Errors
from checkout.config import Settings, configure_logging
from checkout.services import Services, build_services

__version__ = "0.1.0"

__all__ = (
    "cache",
    "discount",
    "pricing",
    "orders",
    "store",
    "Result",
    "Ok",
    "Error",
    "Money",
    "Role",
    "Clock",
    "money",
    "ErrorKind",
    "CheckoutError",
    "Errors",
    "Settings",
    "configure_logging",
    "Services",
    "build_services",
)
