"""CLI commands for shipping quotes."""

from __future__ import annotations

import click

from fulfillment.application.dto import QuoteItemSpec
from fulfillment.domain.exceptions import DomainException
from fulfillment.domain.model.value_objects import Destination
from fulfillment.infrastructure.bootstrap import quote_shipping_handler


def _parse_items(raw: str) -> list[QuoteItemSpec]:
    """Parse 'P1:3,P2:5' into QuoteItemSpec list."""
    specs: list[QuoteItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            specs.append(QuoteItemSpec(product_id=pair))
            continue
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(QuoteItemSpec(product_id=product_id.strip(), quantity=qty))
    return specs


@click.command("quote")
@click.option("--items", required=True, help="Items as 'ProductID:Qty,ProductID:Qty'.")
@click.option("--pincode", default=None, help="Delivery pincode.")
@click.option("--state", default=None, help="Delivery state.")
def shipping_quote(items: str, pincode: str | None, state: str | None) -> None:
    """Quote standard and express shipping for products to one address."""
    specs = _parse_items(items)
    destination = Destination(pincode=pincode, state=state) if pincode else None

    try:
        results = quote_shipping_handler().handle(specs, destination)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    for product_id, result in results.items():
        if not result.ok:
            click.echo(f"{product_id} x{result.quantity}: {result.error}")
            continue
        source = f"from {result.warehouse_id} (zone {result.zone})" if result.warehouse_id else "default rates"
        click.echo(f"{product_id} x{result.quantity}: {source}")
        for mode, option in result.options.items():
            if option.available:
                click.echo(f"  {mode:<9} {option.cost:>14}  {option.estimated_days} days")
            else:
                click.echo(f"  {mode:<9} unavailable ({option.reason})")
