"""EntityRelation — the content-bearing edge between two records.

Relations are an ordinary schema: they are registered, stored, and queried
through the same record machinery as any caller-defined type. The
4-tuple (source schema, source id, target schema, target id) is unique.
"""

from __future__ import annotations

from typing import ClassVar

from metaagent.domain.records import Record, ValidationResult

RELATION_SCHEMA = "entity_relation"

RELATION_KEY_FIELDS: tuple[str, ...] = (
    "source_schema_name",
    "source_entity_id",
    "target_schema_name",
    "target_entity_id",
)


class EntityRelation(Record):
    """Directed edge from a source record to a target record."""

    schema_name: ClassVar[str] = RELATION_SCHEMA
    unique_together: ClassVar[tuple[tuple[str, ...], ...]] = (RELATION_KEY_FIELDS,)
    indexed: ClassVar[tuple[str, ...]] = ("target_schema_name",)

    source_schema_name: str = ""
    source_entity_id: int = 0
    target_schema_name: str = ""
    target_entity_id: int = 0
    content: str = ""

    def key(self) -> tuple[str, int, str, int]:
        """The identifying 4-tuple of this relation."""
        return (
            self.source_schema_name,
            self.source_entity_id,
            self.target_schema_name,
            self.target_entity_id,
        )

    def key_filter(self) -> dict[str, str | int]:
        """The 4-tuple as a column -> value mapping."""
        return dict(zip(RELATION_KEY_FIELDS, self.key(), strict=True))

    def validate_record(self) -> ValidationResult:
        errors: list[str] = []
        if not self.source_schema_name:
            errors.append("source_schema_name is required")
        if not self.target_schema_name:
            errors.append("target_schema_name is required")
        if self.source_entity_id <= 0:
            errors.append("source_entity_id must be a positive identity")
        if self.target_entity_id <= 0:
            errors.append("target_entity_id must be a positive identity")
        return ValidationResult(valid=not errors, errors=errors)
