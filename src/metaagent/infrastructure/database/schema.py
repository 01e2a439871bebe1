"""Schema registry and SQLAlchemy Core table derivation.

Each registered :class:`Record` subclass gets one table named after its
``schema_name``. Columns come from the pydantic fields:

========================  =====================
Field type                Column type
========================  =====================
``bool``                  ``Boolean``
``int`` / ``IntEnum``     ``Integer``
``float``                 ``Float``
``Decimal``               ``Numeric``
``str`` / ``StrEnum``     ``Text``
``datetime``              ``DateTime(timezone)``
``date``                  ``Date``
``bytes``                 ``LargeBinary``
anything else             ``JSON``
========================  =====================

``X | None`` makes the column nullable. ``id`` is always the integer
autoincrement primary key.

The registry is built at startup and sealed when the agent opens;
there is no locking, so registration must finish before traffic starts.
"""

from __future__ import annotations

import logging
import types
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union, get_args, get_origin

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    Numeric,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.types import TypeEngine

from metaagent.domain.records import Record, RecordList
from metaagent.errors import RegistrySealedError, SchemaNotRegisteredError

logger = logging.getLogger(__name__)

# Order matters: bool before int, datetime before date.
_SCALAR_COLUMN_TYPES: list[tuple[type, type[TypeEngine[Any]] | TypeEngine[Any]]] = [
    (bool, Boolean),
    (int, Integer),
    (float, Float),
    (Decimal, Numeric),
    (str, Text),
    (datetime, DateTime(timezone=True)),
    (date, Date),
    (bytes, LargeBinary),
]


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Strip ``None`` from a union annotation, reporting nullability."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        nullable = len(members) != len(get_args(annotation))
        if len(members) == 1:
            return members[0], nullable
        return annotation, nullable
    return annotation, False


def column_type_for(annotation: Any) -> tuple[TypeEngine[Any] | type[TypeEngine[Any]], bool]:
    """Map a field annotation to ``(column_type, nullable)``."""
    inner, nullable = _unwrap_optional(annotation)
    if isinstance(inner, type) and get_origin(inner) is None:
        for py_type, sa_type in _SCALAR_COLUMN_TYPES:
            if issubclass(inner, py_type):
                return sa_type, nullable
    return JSON, nullable


def build_table(record_cls: type[Record], metadata: MetaData) -> Table:
    """Derive the table for *record_cls* and attach it to *metadata*."""
    name = record_cls.schema_name
    columns: list[Column[Any]] = []
    for field_name, info in record_cls.model_fields.items():
        if field_name == "id":
            columns.append(Column("id", Integer, primary_key=True, autoincrement=True))
            continue
        sa_type, nullable = column_type_for(info.annotation)
        columns.append(Column(field_name, sa_type, nullable=nullable))

    constraints: list[Any] = [
        UniqueConstraint(*group, name=f"uq_{name}_{'_'.join(group)}")
        for group in record_cls.unique_together
    ]
    table = Table(name, metadata, *columns, *constraints)
    for column_name in record_cls.indexed:
        Index(f"ix_{name}_{column_name}", table.c[column_name])
    return table


@dataclass(frozen=True)
class SchemaDescriptor:
    """One registry entry: name, record type, and its derived table."""

    name: str
    record_cls: type[Record]
    table: Table

    def factory(self) -> Record:
        """A fresh zero-valued record. Never shared, never cached."""
        return self.record_cls()

    def list_factory(self) -> RecordList:
        """A fresh empty record list bound to this schema."""
        return RecordList(self.record_cls)

    @staticmethod
    def get_id(record: Record) -> int:
        return record.get_id()

    @staticmethod
    def set_id(record: Record, value: int) -> None:
        record.set_id(value)


class SchemaRegistry:
    """Name -> :class:`SchemaDescriptor` table shared by the whole agent.

    Re-registering a name replaces the previous entry and rebuilds its
    table. After :meth:`seal`, registration raises
    :class:`RegistrySealedError`.
    """

    def __init__(self, metadata: MetaData | None = None) -> None:
        self._metadata = metadata if metadata is not None else MetaData()
        self._schemas: dict[str, SchemaDescriptor] = {}
        self._sealed = False

    @property
    def metadata(self) -> MetaData:
        """SQLAlchemy metadata holding every registered table."""
        return self._metadata

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Forbid further registration."""
        self._sealed = True

    def register(self, record_cls: type[Record]) -> SchemaDescriptor:
        """Register *record_cls* under its ``schema_name``.

        Raises:
            RegistrySealedError: If the registry has been sealed.
            TypeError: If *record_cls* is not a :class:`Record` subclass.
            ValueError: If the schema name is empty or a field lacks a default.
        """
        if self._sealed:
            msg = f"Cannot register {record_cls!r}: schema registry is sealed"
            raise RegistrySealedError(msg)
        if not (isinstance(record_cls, type) and issubclass(record_cls, Record)):
            msg = f"Schemas must subclass Record, got {record_cls!r}"
            raise TypeError(msg)

        name = record_cls.schema_name.strip()
        if not name:
            msg = f"{record_cls.__name__} must set a non-empty schema_name"
            raise ValueError(msg)
        required = [n for n, info in record_cls.model_fields.items() if info.is_required()]
        if required:
            msg = f"{record_cls.__name__} fields need defaults for a zero value: {required}"
            raise ValueError(msg)

        existing = self._metadata.tables.get(name)
        if existing is not None:
            self._metadata.remove(existing)
            logger.debug("Replacing schema registration %s", name)

        descriptor = SchemaDescriptor(
            name=name,
            record_cls=record_cls,
            table=build_table(record_cls, self._metadata),
        )
        self._schemas[name] = descriptor
        logger.debug("Registered schema %s -> %s", name, record_cls.__qualname__)
        return descriptor

    def get(self, name: str) -> SchemaDescriptor | None:
        return self._schemas.get(name)

    def require(self, name: str) -> SchemaDescriptor:
        """Look up *name*, raising :class:`SchemaNotRegisteredError` if absent."""
        descriptor = self._schemas.get(name)
        if descriptor is None:
            raise SchemaNotRegisteredError(name)
        return descriptor

    def descriptor_for(self, record: Record | RecordList | str) -> SchemaDescriptor:
        """Resolve the descriptor for a record, record list, or schema name."""
        if isinstance(record, str):
            return self.require(record)
        return self.require(record.schema_name)

    def table_for(self, name: str) -> Table:
        return self.require(name).table

    def new_record(self, name: str) -> Record:
        """A fresh zero-valued record of schema *name*."""
        return self.require(name).factory()

    def new_record_list(self, name: str) -> RecordList:
        """A fresh empty record list of schema *name*."""
        return self.require(name).list_factory()

    def names(self) -> list[str]:
        return sorted(self._schemas)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[SchemaDescriptor]:
        return iter(list(self._schemas.values()))

    def __len__(self) -> int:
        return len(self._schemas)
