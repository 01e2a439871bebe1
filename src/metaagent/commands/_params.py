"""Shared option parsing for entity and relation commands."""

from __future__ import annotations

import json
from typing import Any

import click


def parse_payload(data: str | None, assignments: tuple[str, ...]) -> dict[str, Any]:
    """Merge a ``--data`` JSON object with ``--set key=value`` pairs (later wins)."""
    payload: dict[str, Any] = {}
    if data:
        try:
            loaded = json.loads(data)
        except json.JSONDecodeError as exc:
            msg = f"not valid JSON: {exc}"
            raise click.BadParameter(msg, param_hint="--data") from exc
        if not isinstance(loaded, dict):
            msg = "must be a JSON object"
            raise click.BadParameter(msg, param_hint="--data")
        payload.update(loaded)
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key:
            msg = f"expected key=value, got {item!r}"
            raise click.BadParameter(msg, param_hint="--set")
        payload[key.strip()] = value
    return payload


def parse_relation_filters(items: tuple[str, ...]) -> dict[str, dict[str, str]]:
    """``schema.field=value`` options -> ``{schema: {field: value}}``."""
    filters: dict[str, dict[str, str]] = {}
    for item in items:
        target, sep, value = item.partition("=")
        schema_name, dot, field_name = target.partition(".")
        if not sep or not dot or not schema_name or not field_name:
            msg = f"expected schema.field=value, got {item!r}"
            raise click.BadParameter(msg, param_hint="--filter")
        filters.setdefault(schema_name, {})[field_name] = value
    return filters


page_size_option = click.option(
    "--page-size",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Rows per page (0 = all).",
)
data_option = click.option("--data", default=None, help="Entity fields as a JSON object.")
set_option = click.option(
    "--set", "assignments", multiple=True, help="Field assignment key=value (repeatable)."
)
page_option = click.option("--page", type=int, default=1, show_default=True, help="1-based page.")
