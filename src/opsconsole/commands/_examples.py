"""``--examples`` option shared by every opsconsole command.

Usage strings live beside the command they document and are printed on
request, so ``--help`` stays short::

    @units.command("list")
    @examples_option("opsconsole units list")
    @click.pass_obj
    def list_cmd(app): ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import click

F = TypeVar("F", bound=Callable[..., object])


def examples_option(*lines: str) -> Callable[[F], F]:
    """Eager flag that prints *lines* indented under the command path and exits."""
    text = "\n".join(f"  {line}" for line in lines)

    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(text)
        ctx.exit(0)

    return click.option(
        "--examples",
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show,
        help="Show usage examples.",
    )
