"""RelationService — add, list, re-label and remove entity relations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from metaagent.domain.relation import EntityRelation
from metaagent.errors import MetaAgentError, StorageError
from metaagent.services._helpers import fanout_to_dict, parse_relation_filter, record_to_dict
from metaagent.services.base import BaseService
from metaagent.services.result import ServiceResult
from metaagent.services.telemetry import traced


def _relation(
    source_schema: str,
    source_id: int,
    target_schema: str,
    target_id: int,
    content: str = "",
) -> EntityRelation:
    return EntityRelation(
        source_schema_name=source_schema,
        source_entity_id=source_id,
        target_schema_name=target_schema,
        target_entity_id=target_id,
        content=content,
    )


class RelationService(BaseService):
    """Relation operations addressed by the (source, target) 4-tuple."""

    @traced
    def add(
        self,
        source_schema: str,
        source_id: int,
        target_schema: str,
        target_id: int,
        content: str = "",
    ) -> ServiceResult:
        op = "add_relation"
        relation = _relation(source_schema, source_id, target_schema, target_id, content)
        try:
            with self._agent.transaction() as txn:
                self._agent.relations.create_relation(relation, txn=txn)
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)
        return ServiceResult(ok=True, op=op, data={"relation": record_to_dict(relation)})

    @traced
    def list_relations(
        self,
        source_schema: str,
        source_id: int,
        *,
        page_size: int = 0,
        page: int = 0,
        include: Sequence[str] | None = None,
        target_schema: str | None = None,
        relation_filter: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Fan out from one source entity; see :meth:`RelationGraph.list_from_source`."""
        op = "list_relations"
        if page_size < 0:
            return ServiceResult.failure(op, "INVALID_QUERY", "page_size must be >= 0")
        try:
            fanout = self._agent.relations.list_from_source(
                source_schema,
                source_id,
                page_size,
                page,
                include=list(include) if include else None,
                filters=parse_relation_filter(relation_filter),
                target_schema=target_schema,
            )
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)

        data = {"schema": source_schema, "id": source_id, **fanout_to_dict(fanout)}
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def update_content(
        self,
        source_schema: str,
        source_id: int,
        target_schema: str,
        target_id: int,
        content: str,
    ) -> ServiceResult:
        op = "update_relation"
        relation = _relation(source_schema, source_id, target_schema, target_id, content)
        try:
            with self._agent.transaction() as txn:
                self._agent.relations.update_content(relation, txn=txn)
                self._agent.store.query_by_identity(relation, txn=txn)
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)
        return ServiceResult(ok=True, op=op, data={"relation": record_to_dict(relation)})

    @traced
    def remove(
        self,
        source_schema: str,
        source_id: int,
        target_schema: str,
        target_id: int,
    ) -> ServiceResult:
        op = "remove_relation"
        relation = _relation(source_schema, source_id, target_schema, target_id)
        try:
            with self._agent.transaction() as txn:
                removed = self._agent.relations.delete_relation(relation, txn=txn)
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"relation": relation.key_filter(), "deleted": removed},
        )
