"""Repositories — generic record access, relations, and lookup caches."""

from metaagent.infrastructure.repositories.cache import TempCache
from metaagent.infrastructure.repositories.predicates import Predicate, PredicateLike
from metaagent.infrastructure.repositories.records import Page, RecordStore
from metaagent.infrastructure.repositories.relations import RelationFanout, RelationGraph

__all__ = [
    "Page",
    "Predicate",
    "PredicateLike",
    "RecordStore",
    "RelationFanout",
    "RelationGraph",
    "TempCache",
]
