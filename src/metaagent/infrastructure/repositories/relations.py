"""RelationGraph — typed edges between records and the fan-out query.

The fan-out answers "every record related to this one", grouped by target
schema. Relation rows for the source are read unpaginated; each expanded
target schema is then fetched with one paginated query (``id IN ...``
plus optional per-schema ``field = value`` filters), so the number of
statements grows with the number of distinct target schemas, not with the
number of edges.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from metaagent.domain.records import RecordList
from metaagent.domain.relation import RELATION_SCHEMA, EntityRelation
from metaagent.errors import (
    AmbiguousRelationError,
    NotFoundError,
    RelationEndpointMissingError,
    RelationQueryError,
)
from metaagent.infrastructure.repositories.predicates import Predicate

if TYPE_CHECKING:
    from metaagent.infrastructure.database.schema import SchemaRegistry
    from metaagent.infrastructure.repositories.records import RecordStore
    from metaagent.infrastructure.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class RelationFanout:
    """Fan-out result for one source record.

    Attributes:
        relations: target schema -> page of target records (ordered by id).
        contents: target schema -> target id -> relation content.
    """

    relations: dict[str, RecordList] = field(default_factory=dict)
    contents: dict[str, dict[int, str]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.contents)


class RelationGraph:
    """Relation CRUD and fan-out built on :class:`RecordStore`."""

    def __init__(self, store: RecordStore, registry: SchemaRegistry) -> None:
        self._store = store
        self._registry = registry

    def create_relation(
        self,
        relation: EntityRelation,
        *,
        txn: Transaction | None = None,
    ) -> EntityRelation:
        """Persist *relation* after checking both endpoints exist.

        Raises:
            SchemaNotRegisteredError: An endpoint schema is unknown.
            RelationEndpointMissingError: An endpoint record does not exist.
            sqlalchemy.exc.IntegrityError: The 4-tuple already exists.
        """
        endpoints = (
            ("source", relation.source_schema_name, relation.source_entity_id),
            ("target", relation.target_schema_name, relation.target_entity_id),
        )
        for role, schema_name, entity_id in endpoints:
            endpoint = self._registry.new_record(schema_name)
            endpoint.set_id(entity_id)
            try:
                self._store.query_by_identity(endpoint, txn=txn)
            except NotFoundError as exc:
                msg = f"Relation {role} {schema_name}#{entity_id} does not exist"
                raise RelationEndpointMissingError(
                    msg, role=role, schema=schema_name, id=entity_id
                ) from exc
        return self._store.create(relation, txn=txn)

    def list_from_source(
        self,
        source_schema: str,
        source_id: int,
        page_size: int = 0,
        page: int = 0,
        *,
        include: Sequence[str] | None = None,
        filters: Mapping[str, Mapping[str, Any]] | None = None,
        target_schema: str | None = None,
        txn: Transaction | None = None,
    ) -> RelationFanout:
        """Fan out from one source record to its related targets.

        Args:
            source_schema: Registered schema of the source record.
            source_id: Identity of the source record; must be set.
            page_size: Page size applied per expanded target schema
                (0 returns every target).
            page: 1-based page applied per expanded target schema.
            include: Target schemas to expand. When empty or omitted, every
                target schema observed is expanded, in first-seen order.
            filters: Per target schema, extra ``field = value`` equalities.
            target_schema: Only consider relation rows pointing at this schema.

        Raises:
            SchemaNotRegisteredError: Source or *target_schema* unknown.
            RelationQueryError: *source_id* is unset.
            NotFoundError: The source record does not exist.
        """
        self._registry.require(source_schema)
        if not source_id:
            msg = f"Fan-out from {source_schema} needs a source id"
            raise RelationQueryError(msg, schema=source_schema)
        if target_schema is not None:
            self._registry.require(target_schema)

        source = self._registry.new_record(source_schema)
        source.set_id(source_id)
        self._store.query_by_identity(source, txn=txn)

        edge_filter: dict[str, Any] = {
            "source_schema_name": source_schema,
            "source_entity_id": source_id,
        }
        if target_schema is not None:
            edge_filter["target_schema_name"] = target_schema
        edges = self._registry.new_record_list(RELATION_SCHEMA)
        self._store.query_page(edges, order="id", desc=True, predicate=edge_filter, txn=txn)

        fanout = RelationFanout()
        if not edges:
            return fanout

        target_ids: dict[str, list[int]] = {}
        for edge in edges:
            assert isinstance(edge, EntityRelation)
            target_ids.setdefault(edge.target_schema_name, []).append(edge.target_entity_id)
            fanout.contents.setdefault(edge.target_schema_name, {})[edge.target_entity_id] = (
                edge.content
            )

        expand = list(include) if include else list(target_ids)
        filters = filters or {}
        for schema_name in expand:
            ids = target_ids.get(schema_name)
            if not ids:
                continue
            if schema_name not in self._registry:
                logger.warning("Skipping unregistered relation target schema %s", schema_name)
                continue
            predicate = Predicate("id IN ?", ids)
            for field_name, value in filters.get(schema_name, {}).items():
                predicate = predicate & Predicate(f"{field_name} = ?", value)
            targets = self._registry.new_record_list(schema_name)
            self._store.query_page(
                targets, page_size, page, order="id", predicate=predicate, txn=txn
            )
            fanout.relations[schema_name] = targets
        return fanout

    def resolve_by_tuple(
        self,
        source_schema: str,
        source_id: int,
        target_schema: str,
        target_id: int,
        *,
        txn: Transaction | None = None,
    ) -> EntityRelation:
        """Find the unique relation for a (source, target) 4-tuple.

        Raises:
            NotFoundError: No relation matches.
            AmbiguousRelationError: More than one relation matches.
        """
        key = EntityRelation(
            source_schema_name=source_schema,
            source_entity_id=source_id,
            target_schema_name=target_schema,
            target_entity_id=target_id,
        )
        matches = self._registry.new_record_list(RELATION_SCHEMA)
        page = self._store.query_page(
            matches, 2, 1, order="id", predicate=key.key_filter(), txn=txn
        )
        if page.total == 0:
            msg = f"No relation {source_schema}#{source_id} -> {target_schema}#{target_id}"
            raise NotFoundError(msg, schema=RELATION_SCHEMA)
        if page.total > 1:
            msg = (
                f"{page.total} relations match {source_schema}#{source_id} -> "
                f"{target_schema}#{target_id}"
            )
            raise AmbiguousRelationError(msg, schema=RELATION_SCHEMA, count=page.total)
        found = matches[0]
        assert isinstance(found, EntityRelation)
        return found

    def update_content(
        self,
        relation: EntityRelation,
        *,
        txn: Transaction | None = None,
    ) -> EntityRelation:
        """Overwrite the content of *relation*, resolving its id if unset."""
        content = relation.content
        self._ensure_identity(relation, txn=txn)
        self._store.update_single_column_by_identity(relation, "content", content, txn=txn)
        return relation

    def delete_relation(self, relation: EntityRelation, *, txn: Transaction | None = None) -> int:
        """Delete *relation*, resolving its id if unset. Returns rows removed."""
        self._ensure_identity(relation, txn=txn)
        return self._store.delete_by_identity(relation, txn=txn)

    def _ensure_identity(self, relation: EntityRelation, *, txn: Transaction | None) -> None:
        if relation.get_id():
            return
        found = self.resolve_by_tuple(*relation.key(), txn=txn)
        relation.set_id(found.get_id())
