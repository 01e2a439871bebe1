"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`;
unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from metaagent.output.console import create_console, get_output

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from metaagent.services.result import ServiceResult

_AUDIT_COLUMNS = ("created_at", "updated_at", "deleted_at")


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="ma.ok"), Text(f"  {result.op}", style="ma.op"))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    if isinstance(value, dict | list):
        value = json.dumps(value, separators=(",", ":"), default=str)
    style = "ma.id" if key == "id" or key.endswith("_id") else ""
    console.print(Text.assemble((f"  {key}: ", "ma.key"), (str(value), style)))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, including the telemetry span tree."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_telemetry_tree(console, value, indent=4)
        else:
            console.print(f"    {key}: {value}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"
    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {span_data.get('name', '?')}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)
    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _record_table(records: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    """A table whose columns are the union of the records' keys, id first."""
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns and (verbose or key not in _AUDIT_COLUMNS):
                columns.append(key)
    if "id" in columns:
        columns.remove("id")
        columns.insert(0, "id")

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for column in columns:
        table.add_column(column, style="ma.id" if column == "id" else None, no_wrap=column == "id")
    for record in records:
        table.add_row(*(_cell(record.get(column)) for column in columns))
    return table


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict | list):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="ma.error"),
        Text(f"  {result.op}{code}", style="ma.op"),
        Text(" — "),
        msg,
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")


# ── Entity renderers ──────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create/update/delete results."""
    _status_line(console, result)
    for key in ("schema", "id", "deleted"):
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_entity(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render get_entity as a panel, followed by related records per schema."""
    data = result.data
    entity = data.get("entity", {})
    lines = [
        f"{key}: {_cell(value)}"
        for key, value in entity.items()
        if key != "id" and (verbose or key not in _AUDIT_COLUMNS)
    ]
    title = f"{data.get('schema', '?')} #{entity.get('id', '?')}"
    console.print(Panel("\n".join(lines), title=title, border_style="ma.schema", expand=False))
    if "relation" in data:
        _render_fanout_groups(console, data, verbose=verbose)
    if verbose:
        _render_meta(console, result)


def _render_entity_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    if items:
        console.print(_record_table(items, verbose=verbose))
    total = result.data.get("total", len(items))
    console.print(f"\n{len(items)} of {total} {result.data.get('schema', '')}")
    if verbose:
        _render_meta(console, result)


# ── Relation renderers ────────────────────────────────────────────────


def _render_fanout_groups(console: Console, data: dict[str, Any], *, verbose: bool) -> None:
    relations: dict[str, list[dict[str, Any]]] = data.get("relation", {})
    contents: dict[str, dict[str, str]] = data.get("relation_content", {})
    if not relations:
        console.print(Text("  no relations", style="dim"))
        return
    for schema_name, records in relations.items():
        rows = [
            {**record, "content": contents.get(schema_name, {}).get(str(record.get("id")), "")}
            for record in records
        ]
        console.print()
        console.print(Text(f"  {schema_name} ({len(rows)})", style="ma.schema"))
        if rows:
            console.print(_record_table(rows, verbose=verbose))


def _render_fanout(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "schema", result.data.get("schema"))
    _field(console, "id", result.data.get("id"))
    _render_fanout_groups(console, result.data, verbose=verbose)
    if verbose:
        _render_meta(console, result)


def _render_relation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    relation = result.data.get("relation", {})
    source = f"{relation.get('source_schema_name')}#{relation.get('source_entity_id')}"
    target = f"{relation.get('target_schema_name')}#{relation.get('target_entity_id')}"
    _field(console, "edge", f"{source} -> {target}")
    if "id" in relation:
        _field(console, "id", relation["id"])
    if relation.get("content"):
        _field(console, "content", relation["content"])
    if "deleted" in result.data:
        _field(console, "deleted", result.data["deleted"])
    if verbose:
        _render_meta(console, result)


# ── Admin renderers ───────────────────────────────────────────────────


def _render_schemas(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Schema", style="ma.schema", no_wrap=True)
    table.add_column("Model")
    table.add_column("Columns")
    for schema in result.data.get("schemas", []):
        table.add_row(schema["name"], schema["model"], ", ".join(schema["columns"]))
    console.print(table)
    plugins = result.data.get("plugins", [])
    if plugins:
        console.print(f"\nplugins: {', '.join(plugins)}")


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("config_path", "database", "schemas"):
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Callable[..., None]] = {
    "create_entity": _render_mutation,
    "update_entity": _render_mutation,
    "delete_entity": _render_mutation,
    "get_entity": _render_entity,
    "list_entities": _render_entity_list,
    "add_relation": _render_relation,
    "update_relation": _render_relation,
    "remove_relation": _render_relation,
    "list_relations": _render_fanout,
    "list_schemas": _render_schemas,
    "init_project": _render_init,
}
