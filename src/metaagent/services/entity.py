"""EntityService — schema-agnostic create / update / delete / get / list.

Every operation takes the schema name as a parameter and flat dict
payloads that are validated onto the registered record model. Failures
come back as ``ServiceResult(ok=False)`` with a stable error code.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from metaagent.errors import MetaAgentError, StorageError, UnknownColumnError
from metaagent.services._helpers import fanout_to_dict, parse_relation_filter, record_to_dict
from metaagent.services.base import BaseService
from metaagent.services.result import ServiceResult
from metaagent.services.telemetry import trace_span, traced

# Audit and identity columns a payload may not set.
_MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at", "deleted_at"})


class EntityService(BaseService):
    """CRUD over any registered schema."""

    @traced
    def create(self, schema_name: str, payload: dict[str, Any]) -> ServiceResult:
        """Validate *payload* onto a new record of *schema_name* and insert it."""
        op = "create_entity"
        try:
            descriptor = self._agent.registry.require(schema_name)
            try:
                record = descriptor.record_cls.model_validate(_strip_managed(payload))
            except PydanticValidationError as exc:
                return self._invalid_payload(op, exc)
            with self._agent.transaction() as txn:
                self._agent.store.create(record, txn=txn)
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={"schema": schema_name, "id": record.id, "entity": record_to_dict(record)},
        )

    @traced
    def update(self, schema_name: str, entity_id: int, payload: dict[str, Any]) -> ServiceResult:
        """Replace every field of an existing entity with *payload*.

        Fields missing from *payload* are reset to their defaults; the
        creation timestamp is kept.
        """
        op = "update_entity"
        try:
            descriptor = self._agent.registry.require(schema_name)
            try:
                record = descriptor.record_cls.model_validate(_strip_managed(payload))
            except PydanticValidationError as exc:
                return self._invalid_payload(op, exc)

            with self._agent.transaction() as txn:
                existing = descriptor.factory()
                self._agent.store.query_one(existing, {"id": entity_id}, txn=txn)
                record.set_id(entity_id)
                record.created_at = existing.created_at
                self._agent.store.update_whole(record, txn=txn)
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={"schema": schema_name, "id": entity_id, "entity": record_to_dict(record)},
        )

    @traced
    def delete(self, schema_name: str, entity_id: int) -> ServiceResult:
        """Delete an entity (soft delete where the schema supports it)."""
        op = "delete_entity"
        try:
            descriptor = self._agent.registry.require(schema_name)
            with self._agent.transaction() as txn:
                existing = descriptor.factory()
                self._agent.store.query_one(existing, {"id": entity_id}, txn=txn)
                removed = self._agent.store.delete_by_identity(existing, txn=txn)
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={"schema": schema_name, "id": entity_id, "deleted": removed},
        )

    @traced
    def get(
        self,
        schema_name: str,
        entity_id: int,
        *,
        include_relation: bool = False,
        relations: Sequence[str] | None = None,
        page_size: int = 0,
        page: int = 0,
        relation_filter: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Fetch one entity, optionally with its related records.

        With *include_relation*, ``data`` gains ``relation`` (target schema
        -> records) and ``relation_content`` (target schema -> id -> content).
        *page_size* and *page* apply per related schema.
        """
        op = "get_entity"
        if page_size < 0:
            return ServiceResult.failure(op, "INVALID_QUERY", "page_size must be >= 0")
        data: dict[str, Any] = {"schema": schema_name}
        try:
            descriptor = self._agent.registry.require(schema_name)
            entity = descriptor.factory()
            self._agent.store.query_one(entity, {"id": entity_id})
            data["entity"] = record_to_dict(entity)

            if include_relation:
                with trace_span("relation_fanout") as span:
                    fanout = self._agent.relations.list_from_source(
                        schema_name,
                        entity_id,
                        page_size,
                        page,
                        include=list(relations) if relations else None,
                        filters=parse_relation_filter(relation_filter),
                    )
                    if span is not None:
                        span.annotate("schemas", len(fanout.relations))
                data.update(fanout_to_dict(fanout))
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)

        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def list_entities(
        self,
        schema_name: str,
        *,
        page_size: int = 0,
        page: int = 0,
        search_field: str | None = None,
        search: Any = None,
    ) -> ServiceResult:
        """List entities newest first, optionally where ``search_field == search``.

        The search value is coerced to the field's declared type.
        """
        op = "list_entities"
        if page_size < 0:
            return ServiceResult.failure(op, "INVALID_QUERY", "page_size must be >= 0")
        try:
            descriptor = self._agent.registry.require(schema_name)
            predicate: dict[str, Any] | None = None
            if search_field:
                if search_field not in descriptor.table.c:
                    msg = f"Schema {schema_name!r} has no field {search_field!r}"
                    raise UnknownColumnError(msg, schema=schema_name, column=search_field)
                try:
                    probe = descriptor.record_cls.model_validate({search_field: search})
                except PydanticValidationError as exc:
                    return self._invalid_payload(op, exc)
                predicate = {search_field: getattr(probe, search_field)}

            items = descriptor.list_factory()
            result = self._agent.store.query_page(
                items, page_size, page, order="id", desc=True, predicate=predicate
            )
        except (MetaAgentError, StorageError) as exc:
            return self._fail(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "schema": schema_name,
                "items": [record_to_dict(r) for r in result.items],
                "total": result.total,
            },
        )


def _strip_managed(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in _MANAGED_FIELDS}
