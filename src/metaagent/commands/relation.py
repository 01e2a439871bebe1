"""Command group: relations between entities."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from metaagent.commands._base import MetaGroup
from metaagent.commands._params import page_option, page_size_option, parse_relation_filters

if TYPE_CHECKING:
    from metaagent.commands._context import AppContext

_RELATION_EXAMPLES = """\
  metaagent relation add book 1 author 7 --content "primary author"
  metaagent relation list book 1 --include author --page-size 10
  metaagent relation update book 1 author 7 "co-author"
  metaagent relation remove book 1 author 7"""


def _endpoints(func: Callable[..., Any]) -> Callable[..., Any]:
    """Positional SOURCE_SCHEMA SOURCE_ID TARGET_SCHEMA TARGET_ID arguments."""
    func = click.argument("target_id", type=int)(func)
    func = click.argument("target_schema")(func)
    func = click.argument("source_id", type=int)(func)
    return click.argument("source_schema")(func)


@click.group(cls=MetaGroup, examples=_RELATION_EXAMPLES)
def relation() -> None:
    """Link entities across schemas and inspect the links."""


@relation.command("add")
@_endpoints
@click.option("--content", default="", help="Payload stored on the relation.")
@click.pass_obj
def add(
    app: AppContext,
    source_schema: str,
    source_id: int,
    target_schema: str,
    target_id: int,
    content: str,
) -> None:
    """Relate SOURCE_SCHEMA#SOURCE_ID to TARGET_SCHEMA#TARGET_ID."""
    from metaagent.services.relation import RelationService

    app.emit(
        RelationService(app.agent).add(source_schema, source_id, target_schema, target_id, content)
    )


@relation.command("list")
@click.argument("source_schema")
@click.argument("source_id", type=int)
@click.option("--include", multiple=True, help="Target schema to expand (repeatable).")
@click.option("--target", "target_schema", default=None, help="Only relations to this schema.")
@click.option("--filter", "filters", multiple=True, help="Target filter schema.field=value.")
@page_size_option
@page_option
@click.pass_obj
def list_cmd(
    app: AppContext,
    source_schema: str,
    source_id: int,
    include: tuple[str, ...],
    target_schema: str | None,
    filters: tuple[str, ...],
    page_size: int,
    page: int,
) -> None:
    """Show every record related to one source entity, grouped by schema."""
    from metaagent.services.relation import RelationService

    app.emit(
        RelationService(app.agent).list_relations(
            source_schema,
            source_id,
            page_size=page_size,
            page=page,
            include=list(include) or None,
            target_schema=target_schema,
            relation_filter=parse_relation_filters(filters),
        )
    )


@relation.command("update")
@_endpoints
@click.argument("content")
@click.pass_obj
def update(
    app: AppContext,
    source_schema: str,
    source_id: int,
    target_schema: str,
    target_id: int,
    content: str,
) -> None:
    """Replace the content of an existing relation."""
    from metaagent.services.relation import RelationService

    app.emit(
        RelationService(app.agent).update_content(
            source_schema, source_id, target_schema, target_id, content
        )
    )


@relation.command("remove")
@_endpoints
@click.pass_obj
def remove(
    app: AppContext,
    source_schema: str,
    source_id: int,
    target_schema: str,
    target_id: int,
) -> None:
    """Delete a relation."""
    from metaagent.services.relation import RelationService

    app.emit(RelationService(app.agent).remove(source_schema, source_id, target_schema, target_id))
