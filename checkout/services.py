"""
Service wiring over the SQL store.
"""

from __future__ import annotations

from dataclasses import dataclass

from kungfu import Result, Ok, Error
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout import cache as C
from checkout._errors import CheckoutError, Errors
from checkout._types import Clock, Money, UserId, system_clock
from checkout.config import Settings
from checkout.discount import DiscountCandidate, PromoValidator
from checkout.orders import (
    DeliveryMethod,
    LoggingNotifications,
    NotificationSink,
    OrderCheckout,
    OrderStatusMachine,
    PaymentLinks,
    PaymentMethod,
    ShippingQuote,
    StaticPaymentLinks,
    shipping_quote,
)
from checkout.pricing import CartCalculation, CartCalculator
from checkout.store import SqlCatalog, unit_of_work


@dataclass(frozen=True, slots=True)
class Services:
    """
    Assembled checkout services.

    Example:
        services = build_services(session_factory, Settings.from_env())
        calc = await services.calculate_cart(user_id, promo_code="SPRING")
    """

    settings: Settings
    catalog: SqlCatalog
    promos: PromoValidator
    calculator: CartCalculator
    checkout: OrderCheckout
    statuses: OrderStatusMachine

    async def calculate_cart(
        self,
        user_id: UserId,
        promo_code: str | None = None,
    ) -> Result[CartCalculation, CheckoutError]:
        """Preview of the user's cart; promo validation may come from cache."""
        items = await self.catalog.priced_cart(user_id)
        return await self.calculator.calculate(user_id, items, promo_code, use_cache=True)

    async def shipping_quote(self, method_id: str, amount: Money) -> Result[ShippingQuote, CheckoutError]:
        method = await self.catalog.delivery_method(method_id)
        if method is None:
            return Error(Errors.not_found("delivery method", method_id))
        return Ok(shipping_quote(method, amount))

    async def delivery_methods(self) -> list[DeliveryMethod]:
        return await self.catalog.delivery_methods()

    async def payment_methods(self, amount: Money | None = None) -> list[PaymentMethod]:
        """Active payment methods; with `amount`, only those accepting it."""
        methods = await self.catalog.payment_methods()
        if amount is None:
            return methods
        return [m for m in methods if m.accepts(amount)]


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
    *,
    clock: Clock = system_clock,
    notifications: NotificationSink | None = None,
    payment_links: PaymentLinks | None = None,
) -> Services:
    settings = settings or Settings()
    begin = unit_of_work(session_factory)
    catalog = SqlCatalog(session_factory)
    notifications = notifications or LoggingNotifications()

    tier = C.TTLTier[DiscountCandidate](ttl=settings.promo_cache_ttl, max_size=settings.promo_cache_size)
    promos = PromoValidator(catalog, tier=tier, clock=clock)
    calculator = CartCalculator(catalog, promos, clock=clock)

    return Services(
        settings=settings,
        catalog=catalog,
        promos=promos,
        calculator=calculator,
        checkout=OrderCheckout(
            begin,
            catalog,
            calculator,
            catalog,
            settings=settings,
            notifications=notifications,
            payment_links=payment_links or StaticPaymentLinks(settings.payment_url_template),
            promos=promos,
            clock=clock,
        ),
        statuses=OrderStatusMachine(
            begin,
            settings=settings,
            notifications=notifications,
            clock=clock,
        ),
    )


__all__ = ("Services", "build_services")
