"""
FastAPI application over the checkout services.

Identity comes from the gateway in front of this app: `X-User-Id` and
`X-User-Role` (customer, manager, admin).
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from kungfu import Result, Ok, Error
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout._errors import CheckoutError, ErrorKind, Errors
from checkout._types import Clock, Role, system_clock
from checkout.config import Settings, configure_logging
from checkout.orders import (
    CreateOrderRequest,
    OrderFilters,
    OrderPage,
    ShippingAddress,
    StatusChange,
    shipping_quote,
)
from checkout.services import Services, build_services
from checkout.store import create_database, seed_reference_data

logger = logging.getLogger(__name__)

type Prepare = Callable[[async_sessionmaker[AsyncSession]], Awaitable[None]]

STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PERMISSION: 403,
    ErrorKind.DEPENDENCY: 502,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Request Bodies
# ═══════════════════════════════════════════════════════════════════════════════


class AddressBody(BaseModel):
    full_name: str
    phone: str
    city: str
    street: str
    building: str
    email: str | None = None
    apartment: str | None = None
    postal_code: str | None = None
    comment: str | None = None


class CreateOrderBody(BaseModel):
    delivery_method_id: str
    payment_method_id: str
    shipping_address: AddressBody | None = None
    promo_code: str | None = Field(default=None, max_length=50)
    comment: str | None = Field(default=None, max_length=1000)

    def to_domain(self) -> CreateOrderRequest:
        address = None
        if self.shipping_address is not None:
            address = ShippingAddress(**self.shipping_address.model_dump())
        return CreateOrderRequest(
            delivery_method_id=self.delivery_method_id,
            payment_method_id=self.payment_method_id,
            shipping_address=address,
            promo_code=self.promo_code,
            comment=self.comment,
        )


class StatusBody(BaseModel):
    status_id: str
    comment: str | None = Field(default=None, max_length=1000)


class CancelBody(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


# ═══════════════════════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════════════════════


class Actor(BaseModel):
    user_id: str
    role: Role


def current_actor(
    x_user_id: Annotated[str, Header()],
    x_user_role: Annotated[str, Header()] = Role.CUSTOMER.value,
) -> Actor:
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise Errors.invalid("UNKNOWN_ROLE", f"Unknown role: {x_user_role}") from None
    return Actor(user_id=x_user_id, role=role)


def services_of(request: Request) -> Services:
    return request.app.state.services


ActorDep = Annotated[Actor, Depends(current_actor)]
ServicesDep = Annotated[Services, Depends(services_of)]


CENTS = Decimal("0.01")


def decimal_json(value: Decimal) -> str:
    """Decimals (money, percents) travel as fixed-point strings with two places, never floats."""
    return format(value.quantize(CENTS), "f")


def encode(value: Any) -> Any:
    return jsonable_encoder(value, custom_encoder={Decimal: decimal_json})


def page_json(page: OrderPage) -> dict[str, Any]:
    return {
        "data": encode(page.items),
        "pagination": {
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "total_pages": page.total_pages,
            "has_next": page.has_next,
            "has_prev": page.has_prev,
        },
    }


def unwrap(result: Result[Any, CheckoutError]) -> Any:
    match result:
        case Ok(value):
            return encode(value)
        case Error(e):
            raise e


# ═══════════════════════════════════════════════════════════════════════════════
# Application
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(
    settings: Settings | None = None,
    *,
    prepare: Prepare | None = None,
    clock: Clock = system_clock,
) -> FastAPI:
    """
    Build the HTTP application.

    `prepare` runs once after the schema and reference data exist, inside
    the app's event loop; use it to load fixtures.

    Example:
        app = create_app(Settings.from_env())
        # uvicorn checkout.contrib.fastapi:app
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings)
        session_factory, engine = await create_database(settings.database_url)
        await seed_reference_data(session_factory)
        if prepare is not None:
            await prepare(session_factory)
        app.state.services = build_services(session_factory, settings, clock=clock)
        logger.info("Checkout API ready")
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title="Storefront checkout API",
        description="Cart pricing, order checkout and order status management",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
        """Map error kinds to HTTP status codes."""
        return JSONResponse(
            status_code=STATUS_CODES.get(exc.kind, 500),
            content={
                "detail": exc.message,
                "code": exc.code,
                "kind": exc.kind.name,
                "details": encode(exc.details),
            },
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Cart
    # ───────────────────────────────────────────────────────────────────────────

    @app.get("/cart/calculation")
    async def calculate_cart(actor: ActorDep, services: ServicesDep, promo_code: str | None = None):
        """Priced cart with the applied discount and the ones that were not chosen."""
        return unwrap(await services.calculate_cart(actor.user_id, promo_code))

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    @app.post("/orders", status_code=201)
    async def create_order(body: CreateOrderBody, actor: ActorDep, services: ServicesDep):
        return unwrap(await services.checkout.create(actor.user_id, body.to_domain()))

    @app.get("/orders")
    async def list_orders(
        actor: ActorDep,
        services: ServicesDep,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        status_id: str | None = None,
        status_ids: Annotated[list[str] | None, Query()] = None,
        user_id: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ):
        """Orders newest first; customers see only their own."""
        filters = OrderFilters(
            page=page,
            limit=limit,
            search=search,
            status_id=status_id,
            status_ids=tuple(status_ids or ()),
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
        )
        match await services.statuses.list_orders(filters, actor.user_id, actor.role):
            case Ok(result):
                return page_json(result)
            case Error(e):
                raise e

    @app.get("/orders/my/last")
    async def my_last_order(actor: ActorDep, services: ServicesDep):
        """The caller's most recent order, or null."""
        return unwrap(await services.statuses.last_order(actor.user_id))

    @app.get("/orders/statuses")
    async def order_statuses(services: ServicesDep):
        return unwrap(await services.statuses.statuses())

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str, actor: ActorDep, services: ServicesDep):
        return unwrap(await services.statuses.get(order_id, actor.user_id, actor.role))

    @app.patch("/orders/{order_id}/status")
    async def update_status(order_id: str, body: StatusBody, actor: ActorDep, services: ServicesDep):
        if not actor.role.is_staff:
            raise Errors.forbidden("STAFF_ONLY", "Only staff can change order status")
        change = StatusChange(order_id, body.status_id, actor.user_id, actor.role, body.comment)
        return unwrap(await services.statuses.transition(change))

    @app.post("/orders/{order_id}/cancel")
    async def cancel_order(
        order_id: str,
        actor: ActorDep,
        services: ServicesDep,
        body: CancelBody | None = None,
    ):
        reason = body.reason if body is not None else None
        return unwrap(await services.statuses.cancel(order_id, actor.user_id, reason))

    @app.get("/orders/{order_id}/history")
    async def status_history(order_id: str, actor: ActorDep, services: ServicesDep):
        return unwrap(await services.statuses.history(order_id, actor.user_id, actor.role))

    @app.get("/orders/{order_id}/available-statuses")
    async def available_statuses(order_id: str, actor: ActorDep, services: ServicesDep):
        return unwrap(await services.statuses.available_statuses(order_id, actor.role))

    # ───────────────────────────────────────────────────────────────────────────
    # Delivery & Payment
    # ───────────────────────────────────────────────────────────────────────────

    @app.get("/delivery-methods")
    async def delivery_methods(services: ServicesDep, cart_amount: Decimal | None = None):
        """Active delivery methods; with `cart_amount`, each carries its shipping quote."""
        methods = await services.delivery_methods()
        out = []
        for method in methods:
            data = encode(method)
            if cart_amount is not None:
                data["quote"] = encode(shipping_quote(method, cart_amount))
            out.append(data)
        return out

    @app.get("/payment-methods")
    async def payment_methods(services: ServicesDep, cart_amount: Decimal | None = None):
        return encode(await services.payment_methods(cart_amount))

    @app.get("/shipping/quote")
    async def quote(delivery_method_id: str, amount: Decimal, services: ServicesDep):
        return unwrap(await services.shipping_quote(delivery_method_id, amount))

    return app


__all__ = ("create_app", "current_actor", "unwrap", "encode", "STATUS_CODES")
