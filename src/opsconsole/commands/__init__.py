"""Subcommand modules for opsconsole.

Provides register_commands() which uses deferred imports to keep
``opsconsole --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root CLI group."""
    from opsconsole.commands.client import client
    from opsconsole.commands.init_cmd import init_cmd
    from opsconsole.commands.tree import tree
    from opsconsole.commands.units import units

    cli.add_command(units)
    cli.add_command(tree)
    cli.add_command(client)
    cli.add_command(init_cmd)
