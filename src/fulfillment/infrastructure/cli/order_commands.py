"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from fulfillment.application.dto import OrderDTO
from fulfillment.domain.exceptions import DomainException
from fulfillment.infrastructure.bootstrap import (
    cancel_order_handler,
    capture_payment_handler,
    complete_order_handler,
    create_order_handler,
    expire_checkouts_handler,
    list_orders_handler,
    show_order_handler,
)


def _parse_modes(raw: str | None) -> dict[str, str]:
    """Parse 'P1:express,P2:standard' into {product_id: mode}."""
    if not raw:
        return {}
    modes: dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid shipping mode '{pair}'. Expected 'ProductID:standard|express'."
            )
        product_id, mode = pair.rsplit(":", 1)
        modes[product_id.strip()] = mode.strip()
    return modes


@click.command("checkout")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--street", required=True)
@click.option("--city", required=True)
@click.option("--state", required=True)
@click.option("--pincode", required=True, help="6-digit Indian pincode.")
@click.option("--country", default="India", show_default=True)
@click.option(
    "--payment",
    "payment_method",
    default="cod",
    show_default=True,
    help="cod, card or paypal.",
)
@click.option("--modes", default=None, help="Shipping modes as 'ProductID:express,...'.")
def order_checkout(
    user_id: str,
    street: str,
    city: str,
    state: str,
    pincode: str,
    country: str,
    payment_method: str,
    modes: str | None,
) -> None:
    """Turn the user's cart into an order."""
    address = {
        "street": street,
        "city": city,
        "state": state,
        "pincode": pincode,
        "country": country,
    }
    try:
        result = create_order_handler().handle(
            user_id=user_id,
            address=address,
            item_shipping_modes=_parse_modes(modes),
            payment_method=payment_method,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {result.order_id} created  (status={result.status})")
    if result.payment_approval_link:
        click.echo(f"Approve payment at: {result.payment_approval_link}")


@click.command("capture")
@click.option("--id", "order_id", required=True, help="Order ID.")
@click.option("--gateway-order-id", required=True, help="Payment gateway order ID.")
def order_capture(order_id: str, gateway_order_id: str) -> None:
    """Capture an approved payment and place the order."""
    try:
        result = capture_payment_handler().handle(order_id, gateway_order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {result.order_id} placed  (status={result.status})")


@click.command("cancel")
@click.option("--id", "order_id", required=True, help="Order ID to cancel.")
def order_cancel(order_id: str) -> None:
    """Cancel an order and release its stock."""
    try:
        result = cancel_order_handler().handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {result.order_id} cancelled — stock released.")
    if result.refund_error:
        click.echo(f"Warning: refund failed: {result.refund_error}", err=True)


@click.command("complete")
@click.option("--id", "order_id", required=True, help="Order ID to complete.")
def order_complete(order_id: str) -> None:
    """Mark a processing order as completed."""
    try:
        status = complete_order_handler().handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} {status}.")


@click.command("expire")
def order_expire() -> None:
    """Release stock held by checkouts whose payment was never approved."""
    try:
        expired = expire_checkouts_handler().handle()
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not expired:
        click.echo("No expired checkouts.")
        return
    for order_id in expired:
        click.echo(f"Checkout {order_id} expired — stock released.")
    click.echo(f"{len(expired)} checkout(s) expired.")


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.id}  (status={dto.status}, payment={dto.payment_method})")
    click.echo(f"User:     {dto.user_id}")
    click.echo(f"Created:  {dto.created_at}")
    address = dto.shipping_address
    click.echo(f"Ship to:  {address['street']}, {address['city']}, {address['state']} {address['pincode']}")
    click.echo()
    click.echo(
        f"  {'Product':<20} {'Qty':>5} {'Price':>12} {'Total':>12} "
        f"{'Warehouse':<12} {'Mode':<9} {'Shipping':>12} {'Days':>5}"
    )
    click.echo(f"  {'-'*94}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.quantity:>5} {item.unit_price:>12} "
            f"{item.line_total:>12} {item.warehouse_id:<12} {item.shipping_mode:<9} "
            f"{item.shipping_cost:>12} {item.estimated_days:>5}"
        )
    click.echo(f"  {'-'*94}")
    click.echo(f"  {'Subtotal':<27} {dto.subtotal:>20}")
    click.echo(f"  {'Shipping':<27} {dto.shipping_total:>20}")
    click.echo(f"  {'Order Total':<27} {dto.total:>20}")


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order ID to display.")
def order_show(order_id: str) -> None:
    """Show details of an existing order."""
    try:
        dto = show_order_handler().handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("list")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--status", default=None, help="Only orders in this status.")
def order_list(user_id: str, status: str | None) -> None:
    """List a user's orders, newest first."""
    try:
        orders = list_orders_handler().handle(user_id, status=status)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'Order':<38} {'Status':<12} {'Items':>5} {'Total':>16}  Created")
    click.echo("-" * 92)
    for dto in orders:
        click.echo(
            f"{dto.id:<38} {dto.status:<12} {len(dto.items):>5} {dto.total:>16}  {dto.created_at}"
        )
