"""Error taxonomy for metaagent.

INVARIANT: The core raises these; it never translates storage failures.
``StorageError`` is SQLAlchemy's own base exception, re-exported so callers
can catch engine failures (including uniqueness violations) by one name.
The service layer maps ``code`` onto :class:`ServiceError` payloads.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError as StorageError


class MetaAgentError(Exception):
    """Base class for every error raised by the metaagent core."""

    code: str = "METAAGENT_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class ValidationError(MetaAgentError):
    """A validatable record rejected itself before persistence."""

    code = "VALIDATION_FAILED"

    def __init__(self, schema_name: str, errors: list[str]) -> None:
        joined = "; ".join(errors) or "record failed validation"
        super().__init__(f"Invalid {schema_name} record: {joined}", schema=schema_name)
        self.schema_name = schema_name
        self.errors = list(errors)


class NotFoundError(MetaAgentError):
    """An identity or predicate lookup matched zero rows."""

    code = "NOT_FOUND"


class SchemaNotRegisteredError(MetaAgentError, KeyError):
    """A schema name has no registration."""

    code = "SCHEMA_NOT_REGISTERED"

    def __init__(self, schema_name: str) -> None:
        super().__init__(f"Schema not registered: {schema_name!r}", schema=schema_name)
        self.schema_name = schema_name

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return self.message


class RelationEndpointMissingError(MetaAgentError):
    """A relation endpoint record does not exist at create time."""

    code = "RELATION_ENDPOINT_MISSING"


class AmbiguousRelationError(MetaAgentError):
    """More than one relation matched a (source, target) 4-tuple."""

    code = "AMBIGUOUS_RELATION"


class RelationQueryError(MetaAgentError):
    """A relation fan-out query was malformed."""

    code = "INVALID_QUERY"


class UnknownColumnError(MetaAgentError):
    """A struct predicate or column update referenced a column the schema lacks."""

    code = "INVALID_QUERY"


class TransactionError(MetaAgentError):
    """A transaction handle was used in a way the protocol forbids."""

    code = "TRANSACTION_ABORTED"


class TransactionAbortedError(TransactionError):
    """A unit of work failed unexpectedly, or a dead transaction was reused."""


class RegistrySealedError(MetaAgentError):
    """Schema registration attempted after the agent was opened."""

    code = "REGISTRY_SEALED"


class NotInitializedError(MetaAgentError):
    """The agent was used before :meth:`MetaAgent.open` succeeded."""

    code = "NOT_INITIALIZED"


class InitializationError(MetaAgentError):
    """Opening the agent failed (engine creation or table setup)."""

    code = "INITIALIZATION_FAILED"


__all__ = [
    "AmbiguousRelationError",
    "InitializationError",
    "MetaAgentError",
    "NotFoundError",
    "NotInitializedError",
    "RegistrySealedError",
    "RelationEndpointMissingError",
    "RelationQueryError",
    "SchemaNotRegisteredError",
    "StorageError",
    "TransactionAbortedError",
    "TransactionError",
    "UnknownColumnError",
    "ValidationError",
]
