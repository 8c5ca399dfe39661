"""CLI commands for inventory management."""

from __future__ import annotations

import click

from fulfillment.domain.exceptions import DomainException
from fulfillment.infrastructure.bootstrap import set_inventory_handler, show_inventory_handler


@click.command("set")
@click.option("--product", required=True, help="Product ID.")
@click.option("--warehouse", required=True, help="Warehouse ID.")
@click.option("--quantity", required=True, type=int, help="Physical quantity on hand.")
def inventory_set(product: str, warehouse: str, quantity: int) -> None:
    """Set the stock of a product at one warehouse."""
    handler = set_inventory_handler()

    try:
        handler.handle(product_id=product, warehouse_id=warehouse, quantity=quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Inventory for '{product}' at {warehouse} set to {quantity}")


@click.command("show")
@click.option("--product", default=None, help="Only show this product.")
def inventory_show(product: str | None) -> None:
    """Show current inventory levels."""
    lines = show_inventory_handler().handle(product_id=product)

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Product':<20} {'Warehouse':<14} {'Total':>8} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 66)
    for line in lines:
        click.echo(
            f"{line.product_id:<20} {line.warehouse_id:<14} {line.total:>8} "
            f"{line.reserved:>10} {line.available:>10}"
        )
