"""
Checkout Example

Cart preview with a promo code, checkout, a repeated promo, status changes
and self-service cancellation over an in-memory database.

Run: uv run python examples/checkout_example.py
"""

from kungfu import Ok, Error

from checkout import Role, Settings, build_services, configure_logging
from checkout.orders import CreateOrderRequest, StatusChange
from checkout.pricing import CartCalculation
from checkout.store import create_database, seed_reference_data

from examples._infra import banner, refill_cart, run, seed_demo


def show(calc: CartCalculation) -> None:
    for row in calc.items:
        note = f"  ({row.not_applied_reason})" if row.not_applied_reason else ""
        print(f"   {row.name:<22} {row.subtotal:>9} - {row.discount_amount:>6} = {row.total:>9}{note}")
    if calc.applied_discount is not None:
        print(f"   Applied: {calc.applied_discount.name} (-{calc.applied_discount.total_amount})")
    for skipped in calc.available_discounts:
        print(f"   Not applied: {skipped.name}: {skipped.reason}")
    for warning in calc.warnings:
        print(f"   ! {warning}")
    print(f"   Total: {calc.total}")


async def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings)
    session_factory, engine = await create_database(settings.database_url)
    await seed_reference_data(session_factory)
    await seed_demo(session_factory)
    services = build_services(session_factory, settings)

    try:
        # 1. Preview with promo
        banner("1. Alice previews her cart with SPRING")
        match await services.calculate_cart("alice", "spring"):
            case Ok(calc):
                show(calc)
            case Error(e):
                print(f"   Error: {e.code}")

        # 2. Checkout
        banner("2. Alice checks out")
        request = CreateOrderRequest("courier_city", "card_online", promo_code="SPRING")
        match await services.checkout.create("alice", request):
            case Ok(created):
                order = created.order
                print(f"   Order {order.number}: total {order.total_amount}, pay at {created.payment_url}")
            case Error(e):
                print(f"   Error: {e.code} {e.message}")
                return

        # 3. Same promo again
        banner("3. Alice tries SPRING a second time")
        await refill_cart(session_factory, "alice")
        match await services.checkout.create("alice", request):
            case Ok(created):
                print(f"   Order {created.order.number}: discount {created.order.discount_amount}")
            case Error(e):
                print(f"   Error: {e.code} {e.message}")

        # 4. Capped group discount, chat offer at full price
        banner("4. Bob (wholesale) previews")
        match await services.calculate_cart("bob"):
            case Ok(calc):
                show(calc)
            case Error(e):
                print(f"   Error: {e.code}")

        # 5. Status changes
        banner("5. Manager works on Alice's first order")
        for status in ("processing", "cancelled"):
            change = StatusChange(order.id, status, "manager-1", Role.MANAGER)
            match await services.statuses.transition(change):
                case Ok(updated):
                    print(f"   -> {updated.status.name}")
                case Error(e):
                    print(f"   {status}: {e.code} ({e.message})")

        # 6. Customer cancels
        banner("6. Alice cancels")
        match await services.statuses.cancel(order.id, "alice", "Ordered by mistake"):
            case Ok(updated):
                print(f"   Status: {updated.status.name}")
            case Error(e):
                print(f"   Error: {e.code}")

        match await services.statuses.history(order.id, "alice", Role.CUSTOMER):
            case Ok(entries):
                for entry in entries:
                    print(f"   {entry.created_at:%H:%M:%S} {entry.status.name:<12} {entry.comment or ''}")
            case Error(e):
                print(f"   Error: {e.code}")

    finally:
        await engine.dispose()


if __name__ == "__main__":
    run(main)
