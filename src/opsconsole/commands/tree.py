"""Command group: sidebar tree display and slug navigation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from opsconsole.commands._examples import examples_option

if TYPE_CHECKING:
    from opsconsole.commands._context import AppContext


@click.group()
@examples_option(
    "opsconsole tree show acme-group",
    "opsconsole tree show acme-group --expand unit:u2 --collapse section:regional-units",
    "opsconsole tree navigate acme-group north-region south-region",
)
def tree() -> None:
    """Show and navigate the sidebar hierarchy."""


@tree.command()
@examples_option(
    "opsconsole tree show acme-group",
    "opsconsole tree show north-region --expand dept:d1",
    "opsconsole --json tree show acme-group",
)
@click.argument("home")
@click.option(
    "--expand", "expand", multiple=True, help="Expansion key to open (repeatable)."
)
@click.option(
    "--collapse", "collapse", multiple=True, help="Expansion key to close (repeatable)."
)
@click.pass_obj
def show(app: AppContext, home: str, expand: tuple[str, ...], collapse: tuple[str, ...]) -> None:
    """Load the tree for HOME (slug or unit id) and render it."""
    app.emit(app.service.unit_tree(home, expand=expand, collapse=collapse))


@tree.command()
@examples_option(
    "opsconsole tree navigate acme-group north-region",
    "opsconsole -v tree navigate acme-group north-region missing-unit",
)
@click.argument("home")
@click.argument("targets", nargs=-1, required=True)
@click.pass_obj
def navigate(app: AppContext, home: str, targets: tuple[str, ...]) -> None:
    """Start at HOME, then follow each of TARGETS without reloading the tree."""
    app.emit(app.service.navigate(home, targets))
