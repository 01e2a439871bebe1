"""Shared service-layer helper functions."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from metaagent.domain.records import Record
    from metaagent.infrastructure.repositories.relations import RelationFanout


def record_to_dict(record: Record) -> dict[str, Any]:
    """JSON-safe dict of a record's fields."""
    return record.model_dump(mode="json")


def records_to_dicts(records: Iterable[Record]) -> list[dict[str, Any]]:
    return [record_to_dict(r) for r in records]


def fanout_to_dict(fanout: RelationFanout) -> dict[str, Any]:
    """Render a fan-out as ``relation`` / ``relation_content`` payload maps.

    Content keys are stringified ids so the payload survives JSON.
    """
    return {
        "relation": {name: records_to_dicts(items) for name, items in fanout.relations.items()},
        "relation_content": {
            name: {str(target_id): content for target_id, content in contents.items()}
            for name, contents in fanout.contents.items()
        },
    }


def parse_relation_filter(raw: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Normalize ``{schema: {field: value}}``; non-mapping entries are dropped.

    Examples:
        >>> parse_relation_filter({"book": {"genre": "sf"}, "bad": 3})
        {'book': {'genre': 'sf'}}
        >>> parse_relation_filter(None)
        {}
    """
    if not raw:
        return {}
    return {name: dict(fields) for name, fields in raw.items() if isinstance(fields, dict)}
