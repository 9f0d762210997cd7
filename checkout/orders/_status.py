"""
Order status machine — transitions, self-service cancellation, history.

Rules for a transition, in order:
    1. order exists; target status exists and is active
    2. target differs from the current status
    3. below ADMIN: cannot leave a terminal status, cannot set a failure status
    4. apply: update status, append log entry
    5. into the cancelled status: return stock of catalog items
"""

from __future__ import annotations

import logging
from dataclasses import replace

from kungfu import Result, Ok, Error

from checkout._errors import CheckoutError, Errors
from checkout._types import Clock, OrderId, Role, UserId, system_clock
from checkout.config import Settings
from checkout.orders._notify import best_effort
from checkout.orders._ports import NotificationSink, UnitOfWork, UnitOfWorkFactory
from checkout.orders._types import Order, OrderFilters, OrderPage, OrderStatus, StatusChange, StatusLogEntry

logger = logging.getLogger(__name__)

CANCELLED_BY_CUSTOMER = "Cancelled by customer"
MAX_PAGE_SIZE = 100


class OrderStatusMachine:
    """
    Moves orders between statuses.

    Status changes are last-writer-wins; the log is the audit trail.

    Example:
        machine = OrderStatusMachine(store.begin, settings=settings)

        match await machine.transition(StatusChange(order_id, paid.id, manager_id, Role.MANAGER)):
            case Ok(order):
                order.status.code  # "paid"
            case Error(e):
                e.kind  # ErrorKind.PERMISSION, ...
    """

    def __init__(
        self,
        begin: UnitOfWorkFactory,
        *,
        settings: Settings | None = None,
        notifications: NotificationSink | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._begin = begin
        self._settings = settings or Settings()
        self._notifications = notifications
        self._clock = clock

    # ───────────────────────────────────────────────────────────────────────────
    # Commands
    # ───────────────────────────────────────────────────────────────────────────

    async def transition(self, change: StatusChange) -> Result[Order, CheckoutError]:
        try:
            async with self._begin() as uow:
                order = await self._order(uow, change.order_id)
                target = await uow.status(change.status_id)
                if target is None or not target.is_active:
                    raise Errors.not_found("order status", change.status_id)
                if target.id == order.status.id:
                    raise Errors.conflict(
                        "STATUS_UNCHANGED",
                        f"Order {order.number} already has status {target.name}",
                        status=target.code,
                    )
                if change.actor_role is not Role.ADMIN:
                    if order.status.is_terminal:
                        raise Errors.forbidden(
                            "FINAL_STATUS_LOCKED",
                            "Insufficient rights to change an order in a final status",
                        )
                    if target.is_final_failure:
                        raise Errors.forbidden("STATUS_FORBIDDEN", "Insufficient rights to set this status")

                updated = await self._apply(uow, order, target, change.actor_id, change.comment)
                await uow.commit()
        except CheckoutError as e:
            logger.info("Status change of order %s rejected: %s %s", change.order_id, e.code, e.message)
            return Error(e)

        await self._changed(order, updated, change.actor_id)
        return Ok(updated)

    async def cancel(
        self,
        order_id: OrderId,
        user_id: UserId,
        reason: str | None = None,
    ) -> Result[Order, CheckoutError]:
        """
        Self-service cancellation by the order owner.

        Allowed only while the current status permits cancellation; the role
        rule of `transition` does not apply here.
        """
        try:
            async with self._begin() as uow:
                order = await self._order(uow, order_id)
                if order.user_id != user_id:
                    raise Errors.not_found("order", order_id)
                if not order.status.can_cancel_order:
                    raise Errors.conflict(
                        "ORDER_NOT_CANCELLABLE",
                        f"Order {order.number} cannot be cancelled in status {order.status.name}",
                        status=order.status.code,
                    )
                code = self._settings.cancelled_status_code
                target = await uow.status_by_code(code)
                if target is None or not target.is_active:
                    raise Errors.not_found("order status", code)

                updated = await self._apply(uow, order, target, user_id, reason or CANCELLED_BY_CUSTOMER)
                await uow.commit()
        except CheckoutError as e:
            logger.info("Cancellation of order %s rejected: %s %s", order_id, e.code, e.message)
            return Error(e)

        await self._changed(order, updated, user_id)
        return Ok(updated)

    # ───────────────────────────────────────────────────────────────────────────
    # Queries
    # ───────────────────────────────────────────────────────────────────────────

    async def get(self, order_id: OrderId, user_id: UserId, role: Role) -> Result[Order, CheckoutError]:
        """Order as seen by `user_id`; other users' orders are hidden from customers."""
        try:
            async with self._begin() as uow:
                return Ok(await self._visible(uow, order_id, user_id, role))
        except CheckoutError as e:
            return Error(e)

    async def list_orders(
        self,
        filters: OrderFilters,
        user_id: UserId,
        role: Role,
    ) -> Result[OrderPage, CheckoutError]:
        """
        Page of orders matching `filters`, newest first.

        Customers only ever see their own orders, whatever `filters.user_id` says.
        """
        if filters.page < 1 or not 1 <= filters.limit <= MAX_PAGE_SIZE:
            return Error(
                Errors.invalid(
                    "INVALID_PAGINATION",
                    f"Page must be at least 1 and limit between 1 and {MAX_PAGE_SIZE}",
                    page=filters.page,
                    limit=filters.limit,
                )
            )
        if not role.is_staff:
            filters = replace(filters, user_id=user_id)

        try:
            async with self._begin() as uow:
                orders, total = await uow.list_orders(filters)
        except CheckoutError as e:
            return Error(e)
        return Ok(OrderPage(items=tuple(orders), total=total, page=filters.page, limit=filters.limit))

    async def last_order(self, user_id: UserId) -> Result[Order | None, CheckoutError]:
        """Most recent order of `user_id`, None when there is none."""
        match await self.list_orders(OrderFilters(page=1, limit=1), user_id, Role.CUSTOMER):
            case Ok(page):
                return Ok(page.items[0] if page.items else None)
            case Error(e):
                return Error(e)

    async def statuses(self) -> Result[list[OrderStatus], CheckoutError]:
        """Active statuses in display order."""
        try:
            async with self._begin() as uow:
                return Ok(await uow.statuses())
        except CheckoutError as e:
            return Error(e)

    async def available_statuses(self, order_id: OrderId, role: Role) -> Result[list[OrderStatus], CheckoutError]:
        """
        Statuses `role` may move the order to.

        ADMIN: every other active status. MANAGER: none out of a terminal
        status, never a failure status. CUSTOMER: none.
        """
        try:
            async with self._begin() as uow:
                order = await self._order(uow, order_id)
                if not role.is_staff:
                    return Ok([])
                current = order.status
                options = [s for s in await uow.statuses() if s.id != current.id]
                if role is Role.MANAGER:
                    if current.is_terminal:
                        return Ok([])
                    options = [s for s in options if not s.is_final_failure]
                return Ok(options)
        except CheckoutError as e:
            return Error(e)

    async def history(
        self,
        order_id: OrderId,
        user_id: UserId,
        role: Role,
    ) -> Result[list[StatusLogEntry], CheckoutError]:
        """Status log, newest first."""
        try:
            async with self._begin() as uow:
                await self._visible(uow, order_id, user_id, role)
                return Ok(await uow.history(order_id))
        except CheckoutError as e:
            return Error(e)

    # ───────────────────────────────────────────────────────────────────────────
    # Internals
    # ───────────────────────────────────────────────────────────────────────────

    async def _order(self, uow: UnitOfWork, order_id: OrderId) -> Order:
        order = await uow.get_order(order_id)
        if order is None:
            raise Errors.not_found("order", order_id)
        return order

    async def _visible(self, uow: UnitOfWork, order_id: OrderId, user_id: UserId, role: Role) -> Order:
        order = await self._order(uow, order_id)
        if not role.is_staff and order.user_id != user_id:
            raise Errors.not_found("order", order_id)
        return order

    async def _apply(
        self,
        uow: UnitOfWork,
        order: Order,
        target: OrderStatus,
        actor_id: UserId,
        comment: str | None,
    ) -> Order:
        now = self._clock()
        await uow.set_status(order.id, target.id, now)
        await uow.append_log(order.id, target.id, actor_id, comment, now)

        if target.is_final_failure and target.code == self._settings.cancelled_status_code:
            for item in order.items:
                if item.product_id is not None:
                    await uow.return_stock(item.product_id, item.quantity)

        return await self._order(uow, order.id)

    async def _changed(self, before: Order, after: Order, actor_id: UserId) -> None:
        logger.info(
            "Order %s status %s -> %s by %s",
            after.number,
            before.status.code,
            after.status.code,
            actor_id,
        )
        if self._notifications is not None:
            notifications = self._notifications
            await best_effort(
                "NOTIFICATION_FAILED",
                lambda: notifications.status_changed(after, before.status, after.status),
            )


__all__ = ("OrderStatusMachine", "CANCELLED_BY_CUSTOMER", "MAX_PAGE_SIZE")
