import click

from fulfillment.infrastructure.bootstrap import close_clients, settings
from fulfillment.infrastructure.cli.db_commands import db_init
from fulfillment.infrastructure.cli.inventory_commands import inventory_set, inventory_show
from fulfillment.infrastructure.cli.order_commands import (
    order_cancel,
    order_capture,
    order_checkout,
    order_complete,
    order_expire,
    order_list,
    order_show,
)
from fulfillment.infrastructure.cli.shipping_commands import shipping_quote
from fulfillment.infrastructure.logging import configure_logging


@click.group()
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Fulfillment — order saga and warehouse allocation"""
    config = settings()
    configure_logging(log_level or config.log_level, json=config.log_json)
    ctx.call_on_close(close_clients)


@cli.group()
def order() -> None:
    """Check out, capture, cancel and inspect orders."""


@cli.group()
def inventory() -> None:
    """Manage warehouse stock."""


@cli.group()
def shipping() -> None:
    """Quote shipping."""


@cli.group()
def db() -> None:
    """Database administration."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_capture)
order.add_command(order_checkout)
order.add_command(order_complete)
order.add_command(order_expire)
order.add_command(order_list)
order.add_command(order_show)
inventory.add_command(inventory_set)
inventory.add_command(inventory_show)
shipping.add_command(shipping_quote)
db.add_command(db_init)
