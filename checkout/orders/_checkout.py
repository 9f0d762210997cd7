"""
Order checkout — cart to persisted order in one atomic write.

Flow:
    1. Preconditions, no side effects: cart, minimum amount, methods.
    2. Atomic write on one UnitOfWork: number, order, items + stock, log,
       promo redemption, cart cleanup, commit. Retried as a whole when the
       order number collides.
    3. Post-commit, best-effort: payment link, notification, promo cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from combinators import flow, lift as L
from kungfu import Result, Ok, Error

from checkout._errors import CheckoutError, Errors
from checkout._items import validate_lines
from checkout._types import Clock, Money, UserId, system_clock
from checkout.config import Settings
from checkout.discount import DiscountKind, PromoValidator
from checkout.orders._methods import check_delivery, check_payment
from checkout.orders._notify import best_effort
from checkout.orders._number import allocate_order_number
from checkout.orders._ports import (
    CartSource,
    MethodSource,
    NotificationSink,
    PaymentLinks,
    UnitOfWorkFactory,
)
from checkout.orders._types import (
    CreateOrderRequest,
    CreateOrderResult,
    DeliveryMethod,
    NewOrder,
    NewOrderItem,
    Order,
    PaymentMethod,
)
from checkout.pricing import CartCalculation, CartCalculator

logger = logging.getLogger(__name__)

CREATED_COMMENT = "Order created"


@dataclass(frozen=True, slots=True)
class _Prepared:
    request: CreateOrderRequest
    calculation: CartCalculation
    delivery: DeliveryMethod
    payment: PaymentMethod
    shipping: Money


def _as_checkout_error(exc: Exception) -> CheckoutError:
    if isinstance(exc, CheckoutError):
        return exc
    raise exc


def _retryable(error: CheckoutError) -> bool:
    if error.retryable:
        logger.warning("Retrying order write: %s", error.message)
    return error.retryable


class OrderCheckout:
    """
    Creates orders from the user's cart.

    Example:
        checkout = OrderCheckout(store.begin, catalog, calculator, catalog, settings=settings)

        match await checkout.create(user_id, CreateOrderRequest("city", "card")):
            case Ok(CreateOrderResult(order=order, payment_url=url)):
                ...
            case Error(e):
                e.kind, e.code
    """

    def __init__(
        self,
        begin: UnitOfWorkFactory,
        carts: CartSource,
        calculator: CartCalculator,
        methods: MethodSource,
        *,
        settings: Settings | None = None,
        notifications: NotificationSink | None = None,
        payment_links: PaymentLinks | None = None,
        promos: PromoValidator | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._begin = begin
        self._carts = carts
        self._calculator = calculator
        self._methods = methods
        self._settings = settings or Settings()
        self._notifications = notifications
        self._links = payment_links
        self._promos = promos
        self._clock = clock

    async def create(self, user_id: UserId, request: CreateOrderRequest) -> Result[CreateOrderResult, CheckoutError]:
        try:
            prepared = await self._prepare(user_id, request)
        except CheckoutError as e:
            logger.info("Checkout rejected for user %s: %s %s", user_id, e.code, e.message)
            return Error(e)

        write = L.catching_async(lambda: self._write(user_id, prepared), on_error=_as_checkout_error)
        result = await (
            flow(write)
            .retry(times=self._settings.order_number_attempts, retry_on=_retryable)
            .compile()
        )

        match result:
            case Ok(order):
                logger.info(
                    "Order %s created for user %s: subtotal %s, discount %s, shipping %s, total %s",
                    order.number,
                    user_id,
                    order.subtotal,
                    order.discount_amount,
                    order.shipping_amount,
                    order.total_amount,
                )
                return Ok(await self._after_commit(order, prepared))
            case Error(e):
                logger.warning("Checkout failed for user %s: %s %s", user_id, e.code, e.message)
                return Error(e)

    # ───────────────────────────────────────────────────────────────────────────
    # Preconditions
    # ───────────────────────────────────────────────────────────────────────────

    async def _prepare(self, user_id: UserId, request: CreateOrderRequest) -> _Prepared:
        items = await self._carts.priced_cart(user_id)
        if not items:
            raise Errors.empty_cart()
        validate_lines(items)
        if not any(i.available for i in items):
            raise Errors.nothing_available()

        match await self._calculator.calculate(user_id, items, request.promo_code, use_cache=False):
            case Ok(calc):
                calculation = calc
            case Error(e):
                raise e

        minimum = self._settings.min_order_amount
        if calculation.total < minimum:
            raise Errors.below_minimum(minimum, calculation.total)

        now = self._clock()
        delivery = check_delivery(
            await self._methods.delivery_method(request.delivery_method_id),
            request.delivery_method_id,
            now,
        )
        payment = check_payment(
            await self._methods.payment_method(request.payment_method_id),
            request.payment_method_id,
            calculation.total,
        )
        return _Prepared(
            request=request,
            calculation=calculation,
            delivery=delivery,
            payment=payment,
            shipping=delivery.shipping_for(calculation.total),
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Atomic Write
    # ───────────────────────────────────────────────────────────────────────────

    async def _write(self, user_id: UserId, p: _Prepared) -> Order:
        calc = p.calculation
        applied = calc.applied_discount
        promo_id = applied.promo_id if applied is not None and applied.kind is DiscountKind.PROMO else None
        now = self._clock()

        async with self._begin() as uow:
            number = await allocate_order_number(uow, now)
            status = await uow.initial_status()
            if status is None:
                raise Errors.not_found("order status", "initial")

            order_id = await uow.add_order(
                NewOrder(
                    number=number,
                    user_id=user_id,
                    status_id=status.id,
                    subtotal=calc.subtotal,
                    discount_amount=calc.total_discount,
                    shipping_amount=p.shipping,
                    total_amount=calc.total + p.shipping,
                    delivery_method_id=p.delivery.id,
                    payment_method_id=p.payment.id,
                    shipping_address=p.request.shipping_address,
                    comment=p.request.comment,
                    promo_code_id=promo_id,
                    created_at=now,
                )
            )

            for row in calc.items:
                await uow.add_item(
                    order_id,
                    NewOrderItem(
                        product_id=row.product_id,
                        offer_id=row.offer_id,
                        name=row.name,
                        sku=row.sku,
                        quantity=row.quantity,
                        price=row.price,
                        discount_amount=row.discount_amount,
                        total=row.total,
                    ),
                )
                if row.product_id is None:
                    continue
                if not await uow.take_stock(row.product_id, row.quantity):
                    available = await uow.stock_level(row.product_id)
                    raise Errors.insufficient_stock(row.name, row.quantity, available)

            await uow.append_log(order_id, status.id, user_id, CREATED_COMMENT, now)

            if promo_id is not None and not await uow.redeem_promo(promo_id, user_id, order_id):
                raise Errors.conflict(
                    "PROMO_REDEMPTION_FAILED",
                    f"Promo code {applied.promo_code} can no longer be used",
                    promo_code=applied.promo_code,
                )

            await uow.clear_cart(user_id)
            order = await uow.get_order(order_id)
            if order is None:
                raise Errors.not_found("order", order_id)
            await uow.commit()

        if promo_id is not None:
            logger.info("Promo %s redeemed by user %s on order %s", applied.promo_code, user_id, number)
        return order

    # ───────────────────────────────────────────────────────────────────────────
    # Post-Commit
    # ───────────────────────────────────────────────────────────────────────────

    async def _after_commit(self, order: Order, p: _Prepared) -> CreateOrderResult:
        payment_url = None
        if p.payment.is_online and self._links is not None:
            links = self._links

            async def link() -> str:
                return links.url_for(order)

            payment_url = await best_effort("PAYMENT_LINK_FAILED", link)

        if self._notifications is not None:
            notifications = self._notifications
            await best_effort("NOTIFICATION_FAILED", lambda: notifications.order_created(order))

        applied = p.calculation.applied_discount
        if self._promos is not None and applied is not None and applied.promo_code is not None:
            promos, code = self._promos, applied.promo_code

            async def evict() -> None:
                match await promos.invalidate(code):
                    case Error(e):
                        logger.warning("CACHE_INVALIDATION_FAILED for promo %s: %s", code, e.message)
                    case Ok(_):
                        pass

            await best_effort("CACHE_INVALIDATION_FAILED", evict)

        return CreateOrderResult(order=order, payment_url=payment_url)


__all__ = ("OrderCheckout", "CREATED_COMMENT")
