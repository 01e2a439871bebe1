"""Command: list registered schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from metaagent.commands._base import MetaCommand

if TYPE_CHECKING:
    from metaagent.commands._context import AppContext


_SCHEMAS_EXAMPLES = """\
  metaagent schemas
  metaagent --json schemas"""


@click.command("schemas", cls=MetaCommand, examples=_SCHEMAS_EXAMPLES)
@click.pass_obj
def schemas(app: AppContext) -> None:
    """List every registered schema and its columns."""
    from metaagent.services.project import ProjectService

    app.emit(ProjectService(app.agent).list_schemas())
