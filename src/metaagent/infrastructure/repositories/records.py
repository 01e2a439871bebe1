"""RecordStore — schema-agnostic CRUD and paginated queries.

Every operation works on an opaque :class:`Record` or :class:`RecordList`
handle, resolves the table through the :class:`SchemaRegistry`, and runs
on the caller's :class:`Transaction` when one is passed (``txn=``) or on
its own auto-committing connection otherwise.

Error contract:

- Validation failures raise :class:`ValidationError` before any statement.
- Lookups that match nothing raise :class:`NotFoundError`.
- Storage failures propagate untranslated (:data:`StorageError`).

Predicate queries hide soft-deleted rows unless ``include_deleted=True``.
Identity lookups and every delete statement ignore that filter.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import JSON, and_, delete, func, insert, literal_column, select, update

from metaagent.domain.records import (
    Record,
    RecordList,
    SoftDeletable,
    SoftDeleteRecord,
    Validatable,
    utc_now,
)
from metaagent.errors import NotFoundError, TransactionError, UnknownColumnError, ValidationError
from metaagent.infrastructure.repositories.predicates import Predicate, PredicateLike, where_clause

if TYPE_CHECKING:
    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine
    from sqlalchemy.sql.elements import ColumnElement

    from metaagent.infrastructure.database.schema import SchemaDescriptor, SchemaRegistry
    from metaagent.infrastructure.repositories.cache import TempCache
    from metaagent.infrastructure.transaction import Transaction

logger = logging.getLogger(__name__)

_RecordT = TypeVar("_RecordT", bound=Record)


@dataclass(frozen=True)
class Page:
    """One page of a query plus the total count of matching rows."""

    items: RecordList
    total: int


class RecordStore:
    """Generic data access over every registered schema."""

    def __init__(self, engine: Engine, registry: SchemaRegistry) -> None:
        self._engine = engine
        self._registry = registry

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, record: _RecordT, *, txn: Transaction | None = None) -> _RecordT:
        """Insert *record*; the identity is always server-generated.

        INSERT INTO {schema} (column1, column2, ...) VALUES (...)
        """
        schema = self._registry.descriptor_for(record)
        if isinstance(record, Validatable):
            result = record.validate_record()
            if not result.valid:
                raise ValidationError(schema.name, result.errors)

        schema.set_id(record, 0)
        now = utc_now()
        record.created_at = now
        record.updated_at = now
        values = self._row_values(schema.table, record)
        del values["id"]

        with self._connect(txn, write=True) as conn:
            result = conn.execute(insert(schema.table).values(values))
        schema.set_id(record, int(result.inserted_primary_key[0]))
        logger.debug("Created %s id=%s", schema.name, record.id)
        return record

    def update_whole(self, record: Record, *, txn: Transaction | None = None) -> Record:
        """Overwrite every column of the row with the record's current values.

        Empty values are written too: this is a full replace, not a patch.

        UPDATE {schema} SET column1=..., column2=... WHERE id={id}
        """
        schema = self._registry.descriptor_for(record)
        identity = self._require_identity(schema, record)
        record.updated_at = utc_now()
        values = self._row_values(schema.table, record)
        del values["id"]

        stmt = update(schema.table).where(schema.table.c.id == identity).values(values)
        with self._connect(txn, write=True) as conn:
            matched = conn.execute(stmt).rowcount
        if matched == 0:
            msg = f"No {schema.name} record with id {identity}"
            raise NotFoundError(msg, schema=schema.name, id=identity)
        return record

    def update_column(
        self,
        schema_name: str,
        column: str,
        value: Any,
        predicate: PredicateLike,
        *,
        txn: Transaction | None = None,
    ) -> int:
        """Set one column on every row matching *predicate*; returns the match count."""
        return self.update_columns(schema_name, {column: value}, predicate, txn=txn)

    def update_columns(
        self,
        schema_name: str,
        columns: Mapping[str, Any],
        predicate: PredicateLike,
        *,
        txn: Transaction | None = None,
    ) -> int:
        """Set the named columns on every row matching *predicate*.

        UPDATE {schema} SET {column}={value}, ... WHERE {predicate}
        """
        schema = self._registry.require(schema_name)
        values = self._column_values(schema.table, columns)
        stmt = update(schema.table).values(values)
        clause = where_clause(schema.table, predicate)
        if clause is not None:
            stmt = stmt.where(clause)
        with self._connect(txn, write=True) as conn:
            return conn.execute(stmt).rowcount

    def update_single_column_by_identity(
        self,
        record: Record,
        column: str,
        value: Any,
        *,
        txn: Transaction | None = None,
    ) -> Record:
        """Set one column of the row identified by ``record.id``.

        The in-memory record is updated to match.

        UPDATE {schema} SET {column}={value} WHERE id={id}
        """
        schema = self._registry.descriptor_for(record)
        identity = self._require_identity(schema, record)
        values = self._column_values(schema.table, {column: value})

        stmt = update(schema.table).where(schema.table.c.id == identity).values(values)
        with self._connect(txn, write=True) as conn:
            matched = conn.execute(stmt).rowcount
        if matched == 0:
            msg = f"No {schema.name} record with id {identity}"
            raise NotFoundError(msg, schema=schema.name, id=identity)

        for name, new_value in values.items():
            setattr(record, name, new_value)
        return record

    def delete_by_identity(self, record: Record, *, txn: Transaction | None = None) -> int:
        """Delete the row identified by ``record.id``.

        Soft-deletable records are marked and fully updated instead; the row
        stays. Otherwise the row is physically removed.

        DELETE FROM {schema} WHERE id={id}
        """
        if isinstance(record, SoftDeletable):
            record.soft_delete()
            self.update_whole(record, txn=txn)
            return 1

        schema = self._registry.descriptor_for(record)
        identity = self._require_identity(schema, record)
        stmt = delete(schema.table).where(schema.table.c.id == identity)
        with self._connect(txn, write=True) as conn:
            removed = conn.execute(stmt).rowcount
        logger.debug("Deleted %s id=%s (%d row)", schema.name, identity, removed)
        return removed

    def delete_by_predicate(
        self,
        target: Record | RecordList | str,
        predicate: PredicateLike,
        *,
        txn: Transaction | None = None,
    ) -> int:
        """Physically delete every row matching *predicate*.

        DELETE FROM {schema} WHERE {predicate}
        """
        schema = self._registry.descriptor_for(target)
        stmt = delete(schema.table)
        clause = where_clause(schema.table, predicate)
        if clause is not None:
            stmt = stmt.where(clause)
        with self._connect(txn, write=True) as conn:
            return conn.execute(stmt).rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query_by_identity(self, record: _RecordT, *, txn: Transaction | None = None) -> _RecordT:
        """Load the row identified by ``record.id`` into *record*."""
        schema = self._registry.descriptor_for(record)
        identity = self._require_identity(schema, record)
        stmt = select(schema.table).where(schema.table.c.id == identity)
        with self._connect(txn) as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            msg = f"No {schema.name} record with id {identity}"
            raise NotFoundError(msg, schema=schema.name, id=identity)
        record.apply_row(row)
        return record

    def query_one(
        self,
        record: _RecordT,
        predicate: PredicateLike = None,
        *,
        include_deleted: bool = False,
        txn: Transaction | None = None,
    ) -> _RecordT:
        """Load the first row (by id) matching *predicate* into *record*.

        SELECT * FROM {schema} WHERE {predicate} ORDER BY id LIMIT 1
        """
        schema = self._registry.descriptor_for(record)
        stmt = select(schema.table).order_by(schema.table.c.id).limit(1)
        clause = self._filter(schema, predicate, include_deleted=include_deleted)
        if clause is not None:
            stmt = stmt.where(clause)
        with self._connect(txn) as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            msg = f"No {schema.name} record matches {predicate!r}"
            raise NotFoundError(msg, schema=schema.name)
        record.apply_row(row)
        return record

    def query_page(
        self,
        records: RecordList,
        page_size: int = 0,
        page: int = 0,
        order: str | None = None,
        desc: bool = False,
        predicate: PredicateLike = None,
        *,
        include_deleted: bool = False,
        txn: Transaction | None = None,
    ) -> Page:
        """Fill *records* with one page of matching rows.

        ``page_size == 0`` returns every matching row and ignores *page*.
        Otherwise ``page`` below 1 is treated as 1. ``total`` counts every
        row matching *predicate*, read on the same connection as the page.
        *order* is a single column name, passed through unvalidated.

        SELECT * FROM {schema} WHERE {predicate}
        [ORDER BY {order} [DESC]] [LIMIT {page_size} OFFSET {page_size * (page - 1)}]
        """
        if page_size < 0:
            msg = f"page_size must be >= 0, got {page_size}"
            raise ValueError(msg)
        schema = self._registry.descriptor_for(records)
        table = schema.table

        count_stmt = select(func.count()).select_from(table)
        stmt = select(table)
        clause = self._filter(schema, predicate, include_deleted=include_deleted)
        if clause is not None:
            count_stmt = count_stmt.where(clause)
            stmt = stmt.where(clause)
        if page_size:
            page = max(page, 1)
            stmt = stmt.limit(page_size).offset(page_size * (page - 1))
        if order:
            order_column = literal_column(order)
            stmt = stmt.order_by(order_column.desc() if desc else order_column)

        records.clear()
        with self._connect(txn) as conn:
            total = int(conn.execute(count_stmt).scalar_one())
            if total == 0:
                return Page(items=records, total=0)
            rows = conn.execute(stmt).mappings().all()
        records.extend(schema.record_cls.from_row(row) for row in rows)
        return Page(items=records, total=total)

    # ------------------------------------------------------------------
    # Locking and caching
    # ------------------------------------------------------------------

    def lock_records(
        self,
        schema_name: str,
        ids: Sequence[int],
        *,
        txn: Transaction | None = None,
    ) -> RecordList:
        """Lock rows by identity until *txn* ends (``SELECT ... FOR UPDATE``).

        Ids are locked in ascending order so concurrent lockers of
        overlapping sets acquire rows in the same order. Dialects without
        row locks (SQLite) run a plain select.
        """
        if txn is None:
            msg = "lock_records requires an open transaction"
            raise TransactionError(msg, schema=schema_name)
        schema = self._registry.require(schema_name)
        locked = schema.list_factory()
        if not ids:
            return locked

        stmt = (
            select(schema.table)
            .where(schema.table.c.id.in_(sorted(set(ids))))
            .order_by(schema.table.c.id)
            .with_for_update()
        )
        rows = txn.connection.execute(stmt).mappings().all()
        locked.extend(schema.record_cls.from_row(row) for row in rows)
        return locked

    def temp_cache(
        self,
        schema_name: str,
        template: str,
        *,
        txn: Transaction | None = None,
    ) -> TempCache:
        """A throwaway memo of ``query_one(Predicate(template, key))`` lookups."""
        from metaagent.infrastructure.repositories.cache import TempCache

        self._registry.require(schema_name)
        return TempCache(self, schema_name, template, txn=txn)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self, txn: Transaction | None, *, write: bool = False) -> Iterator[Connection]:
        """Yield the transaction's connection, or a fresh one for this call only."""
        if txn is not None:
            yield txn.connection
            return
        if write:
            with self._engine.begin() as conn:
                yield conn
        else:
            with self._engine.connect() as conn:
                yield conn

    @staticmethod
    def _require_identity(schema: SchemaDescriptor, record: Record) -> int:
        identity = schema.get_id(record)
        if not identity:
            msg = f"{schema.name} record has no identity"
            raise NotFoundError(msg, schema=schema.name)
        return identity

    @staticmethod
    def _row_values(table: Table, record: Record) -> dict[str, Any]:
        """Column values for *record*; JSON columns get JSON-safe data."""
        python_data = record.model_dump()
        json_data: dict[str, Any] | None = None
        values: dict[str, Any] = {}
        for column in table.columns:
            if column.name not in python_data:
                continue
            if isinstance(column.type, JSON):
                if json_data is None:
                    json_data = record.model_dump(mode="json")
                values[column.name] = json_data[column.name]
            else:
                values[column.name] = python_data[column.name]
        return values

    @staticmethod
    def _column_values(table: Table, columns: Mapping[str, Any]) -> dict[str, Any]:
        """Validate column names for a partial update and stamp ``updated_at``."""
        values = dict(columns)
        for name in values:
            if name not in table.c or name == "id":
                msg = f"Schema {table.name!r} has no updatable column {name!r}"
                raise UnknownColumnError(msg, schema=table.name, column=name)
        if "updated_at" in table.c and "updated_at" not in values:
            values["updated_at"] = utc_now()
        return values

    @staticmethod
    def _filter(
        schema: SchemaDescriptor,
        predicate: PredicateLike,
        *,
        include_deleted: bool,
    ) -> ColumnElement[bool] | None:
        clauses: list[Any] = []
        clause = where_clause(schema.table, predicate)
        if clause is not None:
            clauses.append(clause)
        if not include_deleted and issubclass(schema.record_cls, SoftDeleteRecord):
            clauses.append(schema.table.c.deleted_at.is_(None))
        if not clauses:
            return None
        return and_(*clauses)


__all__ = ["Page", "Predicate", "RecordStore"]
