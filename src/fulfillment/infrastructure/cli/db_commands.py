"""CLI commands for database administration."""

from __future__ import annotations

import click

from fulfillment.infrastructure.bootstrap import engine


@click.command("init")
def db_init() -> None:
    """Create the database tables if they do not exist."""
    engine()
    click.echo("Database ready.")
