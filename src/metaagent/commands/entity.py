"""Command group: entity CRUD over any registered schema."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from metaagent.commands._base import MetaGroup
from metaagent.commands._params import (
    data_option,
    page_option,
    page_size_option,
    parse_payload,
    parse_relation_filters,
    set_option,
)

if TYPE_CHECKING:
    from metaagent.commands._context import AppContext

_ENTITY_EXAMPLES = """\
  metaagent entity create book --set title="Dune" --set year=1965
  metaagent entity create book --data '{"title": "Dune", "tags": ["sf"]}'
  metaagent entity get book 1 --relations --include author
  metaagent entity list book --search-field year --search 1965 --page-size 20
  metaagent entity update book 1 --set title="Dune Messiah"
  metaagent entity delete book 1"""


@click.group(cls=MetaGroup, examples=_ENTITY_EXAMPLES)
def entity() -> None:
    """Create, read, update and delete entities of any schema."""


@entity.command("create", examples="  metaagent entity create book --set title=Dune")
@click.argument("schema_name")
@data_option
@set_option
@click.pass_obj
def create(
    app: AppContext,
    schema_name: str,
    data: str | None,
    assignments: tuple[str, ...],
) -> None:
    """Create an entity of SCHEMA_NAME."""
    from metaagent.services.entity import EntityService

    payload = parse_payload(data, assignments)
    app.emit(EntityService(app.agent).create(schema_name, payload))


@entity.command("update", examples="  metaagent entity update book 1 --set title=Dune")
@click.argument("schema_name")
@click.argument("entity_id", type=int)
@data_option
@set_option
@click.pass_obj
def update(
    app: AppContext,
    schema_name: str,
    entity_id: int,
    data: str | None,
    assignments: tuple[str, ...],
) -> None:
    """Replace every field of an entity (omitted fields reset to defaults)."""
    from metaagent.services.entity import EntityService

    payload = parse_payload(data, assignments)
    app.emit(EntityService(app.agent).update(schema_name, entity_id, payload))


@entity.command("delete", examples="  metaagent entity delete book 1")
@click.argument("schema_name")
@click.argument("entity_id", type=int)
@click.pass_obj
def delete(app: AppContext, schema_name: str, entity_id: int) -> None:
    """Delete an entity (soft delete for soft-deletable schemas)."""
    from metaagent.services.entity import EntityService

    app.emit(EntityService(app.agent).delete(schema_name, entity_id))


@entity.command(
    "get",
    examples="  metaagent entity get book 1\n"
    "  metaagent entity get book 1 --relations --filter author.country=UK",
)
@click.argument("schema_name")
@click.argument("entity_id", type=int)
@click.option("--relations", "include_relation", is_flag=True, help="Include related records.")
@click.option("--include", multiple=True, help="Related schema to expand (repeatable).")
@click.option("--filter", "filters", multiple=True, help="Related filter schema.field=value.")
@page_size_option
@page_option
@click.pass_obj
def get(
    app: AppContext,
    schema_name: str,
    entity_id: int,
    include_relation: bool,
    include: tuple[str, ...],
    filters: tuple[str, ...],
    page_size: int,
    page: int,
) -> None:
    """Show one entity, optionally with related records grouped by schema."""
    from metaagent.services.entity import EntityService

    app.emit(
        EntityService(app.agent).get(
            schema_name,
            entity_id,
            include_relation=include_relation,
            relations=list(include) or None,
            page_size=page_size,
            page=page,
            relation_filter=parse_relation_filters(filters),
        )
    )


@entity.command("list", examples="  metaagent entity list book --page-size 10 --page 2")
@click.argument("schema_name")
@click.option("--search-field", default=None, help="Field to match exactly.")
@click.option("--search", default=None, help="Value for --search-field.")
@page_size_option
@page_option
@click.pass_obj
def list_cmd(
    app: AppContext,
    schema_name: str,
    search_field: str | None,
    search: str | None,
    page_size: int,
    page: int,
) -> None:
    """List entities, newest first."""
    from metaagent.services.entity import EntityService

    app.emit(
        EntityService(app.agent).list_entities(
            schema_name,
            page_size=page_size,
            page=page,
            search_field=search_field,
            search=search,
        )
    )
