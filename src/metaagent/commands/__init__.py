"""Subcommand modules for metaagent.

register_commands() imports lazily to keep ``metaagent --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    from metaagent.commands.entity import entity
    from metaagent.commands.relation import relation

    cli.add_command(entity)
    cli.add_command(relation)

    from metaagent.commands.init_cmd import init_cmd
    from metaagent.commands.schema import schemas

    cli.add_command(init_cmd)
    cli.add_command(schemas)
