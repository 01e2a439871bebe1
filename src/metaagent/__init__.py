"""metaagent — runtime-registered record schemas over SQLAlchemy Core.

Register pydantic :class:`Record` subclasses by name, then create, query,
relate and delete them through one generic store, composing calls into
shared transactions by passing the handle down.
"""

from metaagent.domain.records import Record, RecordList, SoftDeleteRecord, ValidationResult
from metaagent.domain.relation import EntityRelation
from metaagent.infrastructure.agent import MetaAgent
from metaagent.infrastructure.repositories.predicates import Predicate
from metaagent.infrastructure.transaction import Transaction

__version__ = "0.1.0"

__all__ = [
    "EntityRelation",
    "MetaAgent",
    "Predicate",
    "Record",
    "RecordList",
    "SoftDeleteRecord",
    "Transaction",
    "ValidationResult",
    "__version__",
]
