"""Command: create the read-model tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from opsconsole.commands._examples import examples_option

if TYPE_CHECKING:
    from opsconsole.commands._context import AppContext


@click.command("init")
@examples_option(
    "opsconsole init",
    "opsconsole --database-url sqlite:////tmp/ops.db init",
    "opsconsole --json init",
)
@click.pass_obj
def init_cmd(app: AppContext) -> None:
    """Create the store tables if they do not exist."""
    from opsconsole.services.console import init_schema

    app.emit(init_schema(app.settings.database_url))
