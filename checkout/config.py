"""
Checkout settings — behavior configuration.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import Decimal, InvalidOperation

ENV_PREFIX = "CHECKOUT_"


# ═══════════════════════════════════════════════════════════════════════════════
# Settings — Full Configuration
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Checkout settings.

    Fluent builder: chain methods to configure.

    Example:
        settings = (
            Settings()
            .with_min_order_amount(Decimal("1000"))
            .with_promo_cache_ttl(seconds=30)
        )

    Note: immutable, each method returns new Settings.
    """

    database_url: str = "sqlite+aiosqlite:///:memory:"
    min_order_amount: Decimal = Decimal("500")
    promo_cache_ttl: timedelta = timedelta(seconds=60)
    promo_cache_size: int = 1000
    # Attempts of the whole atomic write when the order number collides.
    order_number_attempts: int = 3
    cancelled_status_code: str = "cancelled"
    payment_url_template: str = "/payment/{order_id}"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.min_order_amount < 0:
            raise ValueError("min_order_amount must be >= 0")
        if self.order_number_attempts < 1:
            raise ValueError("order_number_attempts must be >= 1")
        if self.promo_cache_size < 1:
            raise ValueError("promo_cache_size must be >= 1")
        if "{order_id}" not in self.payment_url_template:
            raise ValueError("payment_url_template must contain {order_id}")

    def with_database(self, url: str) -> Settings:
        return replace(self, database_url=url)

    def with_min_order_amount(self, amount: Decimal) -> Settings:
        return replace(self, min_order_amount=amount)

    def with_promo_cache_ttl(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Settings:
        """
        Set TTL for cached promo validations.

        Example:
            .with_promo_cache_ttl(seconds=60)
            .with_promo_cache_ttl(delta=timedelta(minutes=2))
        """
        if delta is None:
            delta = timedelta(seconds=seconds or 0)
        return replace(self, promo_cache_ttl=delta)

    def with_order_number_attempts(self, attempts: int) -> Settings:
        return replace(self, order_number_attempts=attempts)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Load settings from CHECKOUT_* variables; unset ones keep defaults.

        Example:
            CHECKOUT_MIN_ORDER_AMOUNT=1000 CHECKOUT_LOG_LEVEL=DEBUG
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        min_amount = defaults.min_order_amount
        if (raw := get("MIN_ORDER_AMOUNT")) is not None:
            try:
                min_amount = Decimal(raw)
            except InvalidOperation:
                raise ValueError(f"{ENV_PREFIX}MIN_ORDER_AMOUNT is not a number: {raw!r}") from None

        ttl = defaults.promo_cache_ttl
        if (raw := get("PROMO_CACHE_TTL")) is not None:
            ttl = timedelta(seconds=_int(raw, "PROMO_CACHE_TTL"))

        return cls(
            database_url=get("DATABASE_URL") or defaults.database_url,
            min_order_amount=min_amount,
            promo_cache_ttl=ttl,
            promo_cache_size=_int(get("PROMO_CACHE_SIZE"), "PROMO_CACHE_SIZE", defaults.promo_cache_size),
            order_number_attempts=_int(
                get("ORDER_NUMBER_ATTEMPTS"), "ORDER_NUMBER_ATTEMPTS", defaults.order_number_attempts
            ),
            cancelled_status_code=get("CANCELLED_STATUS_CODE") or defaults.cancelled_status_code,
            payment_url_template=get("PAYMENT_URL_TEMPLATE") or defaults.payment_url_template,
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        )


def _int(raw: str | None, name: str, default: int = 0) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} is not an integer: {raw!r}") from None


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════


def configure_logging(settings: Settings) -> None:
    """Install a root handler for applications embedding checkout."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ("Settings", "configure_logging")
