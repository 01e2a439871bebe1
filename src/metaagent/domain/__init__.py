"""Domain layer — record base types, capabilities, and enums.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""

from metaagent.domain.records import (
    Record,
    RecordList,
    SoftDeletable,
    SoftDeleteRecord,
    Validatable,
    ValidationResult,
)
from metaagent.domain.relation import RELATION_SCHEMA, EntityRelation

__all__ = [
    "RELATION_SCHEMA",
    "EntityRelation",
    "Record",
    "RecordList",
    "SoftDeletable",
    "SoftDeleteRecord",
    "Validatable",
    "ValidationResult",
]
