"""Command group: client accounts and properties."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from opsconsole.commands._examples import examples_option

if TYPE_CHECKING:
    from opsconsole.commands._context import AppContext


@click.group()
@examples_option(
    "opsconsole client show acc-1",
    "opsconsole client list north-region",
    "opsconsole client property prop-1",
)
def client() -> None:
    """Look up client accounts, properties and equipment."""


@client.command()
@examples_option("opsconsole client show acc-1", "opsconsole --json client show acc-1")
@click.argument("account_id")
@click.pass_obj
def show(app: AppContext, account_id: str) -> None:
    """Show an account with its contact, properties and equipment."""
    app.emit(app.service.client_detail(account_id))


@client.command("list")
@examples_option("opsconsole client list north-region", "opsconsole client list acme-group")
@click.argument("unit_slug")
@click.pass_obj
def list_cmd(app: AppContext, unit_slug: str) -> None:
    """List the accounts with properties in UNIT_SLUG (and its children for a group)."""
    app.emit(app.service.client_list(unit_slug))


@client.command("property")
@examples_option("opsconsole client property prop-1")
@click.argument("property_id")
@click.pass_obj
def property_cmd(app: AppContext, property_id: str) -> None:
    """Show a property with its owner and equipment."""
    app.emit(app.service.property_detail(property_id))
