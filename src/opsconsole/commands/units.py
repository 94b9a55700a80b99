"""Command group: business unit listing and slug resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from opsconsole.commands._examples import examples_option

if TYPE_CHECKING:
    from opsconsole.commands._context import AppContext


@click.group()
@examples_option(
    "opsconsole units list",
    "opsconsole units resolve north-region",
    "opsconsole -q units list",
)
def units() -> None:
    """Inspect the business unit cache."""


@units.command("list")
@examples_option("opsconsole units list", "opsconsole --json units list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every business unit with its routing slug."""
    app.emit(app.service.list_units())


@units.command()
@examples_option(
    "opsconsole units resolve north-region",
    "opsconsole units resolve 'North Region'",
)
@click.argument("slug")
@click.pass_obj
def resolve(app: AppContext, slug: str) -> None:
    """Resolve SLUG (or a unit name) to its business unit."""
    app.emit(app.service.resolve_unit(slug))
