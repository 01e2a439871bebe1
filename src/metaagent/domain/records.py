"""Record models — the contract every registered schema satisfies.

A schema is a :class:`Record` subclass. Its pydantic fields ARE the table
columns; the infrastructure layer derives one table per registered schema
from ``model_fields``. Every field must carry a default so a schema can
produce a zero-valued instance on demand.

Optional capabilities are detected at runtime, never declared:

- :class:`Validatable`: ``validate_record()`` is consulted before insert.
- :class:`SoftDeletable`: ``soft_delete()`` replaces a physical delete.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar, Protocol, Self, runtime_checkable

from pydantic import BaseModel, ConfigDict


def utc_now() -> datetime:
    """Current UTC time (timezone-aware) for audit timestamps."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class ValidationResult:
    """Result of a record's self-validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@runtime_checkable
class Validatable(Protocol):
    """A record that can reject itself before persistence."""

    def validate_record(self) -> ValidationResult: ...


@runtime_checkable
class SoftDeletable(Protocol):
    """A record that marks itself deleted instead of being removed."""

    def soft_delete(self) -> None: ...


class Record(BaseModel):
    """Base record: integer identity plus creation/update timestamps.

    Subclasses set :attr:`schema_name` and declare their columns as fields.
    ``unique_together`` and ``indexed`` describe extra table constraints
    without tying the domain layer to SQLAlchemy.

    Usage::

        class Book(Record):
            schema_name: ClassVar[str] = "book"
            indexed: ClassVar[tuple[str, ...]] = ("isbn",)

            title: str = ""
            isbn: str = ""
    """

    model_config = ConfigDict(extra="ignore")

    schema_name: ClassVar[str] = ""
    unique_together: ClassVar[tuple[tuple[str, ...], ...]] = ()
    indexed: ClassVar[tuple[str, ...]] = ()

    id: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def get_id(self) -> int:
        return self.id

    def set_id(self, value: int) -> None:
        self.id = value

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Self:
        """Build a record from a result row mapping."""
        return cls.model_validate(dict(row))

    def apply_row(self, row: Mapping[str, Any]) -> None:
        """Overwrite this instance's fields in place from a result row."""
        loaded = type(self).from_row(row)
        for name in type(self).model_fields:
            setattr(self, name, getattr(loaded, name))


class SoftDeleteRecord(Record):
    """Record whose deletion only stamps ``deleted_at``.

    Predicate queries exclude rows with ``deleted_at`` set unless asked
    to include them; identity lookups always see them.
    """

    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utc_now()


class RecordList(list[Record]):
    """A list of records bound to one schema.

    The schema binding travels with the list so paginated queries know
    which table to read without a separate schema argument.
    """

    def __init__(self, record_cls: type[Record], items: Iterable[Record] = ()) -> None:
        super().__init__(items)
        self.record_cls = record_cls

    @property
    def schema_name(self) -> str:
        return self.record_cls.schema_name

    def __repr__(self) -> str:
        return f"RecordList({self.schema_name!r}, {list.__repr__(self)})"
