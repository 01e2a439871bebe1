"""TempCache — per-call-site memo over single-record predicate lookups.

A cache is bound to one schema and one ``?`` template. ``get(key)`` runs
``query_one`` with ``Predicate(template, key)`` on the first request for a
key and returns the memoized record afterwards. There is no invalidation,
no expiry and no locking: create one where a batch of lookups is about to
repeat keys and drop it when the batch is done.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from metaagent.infrastructure.repositories.predicates import Predicate

if TYPE_CHECKING:
    from collections.abc import Hashable

    from metaagent.domain.records import Record
    from metaagent.infrastructure.repositories.records import RecordStore
    from metaagent.infrastructure.transaction import Transaction


class TempCache:
    """Unsynchronized ``key -> record`` memo for one schema and template."""

    def __init__(
        self,
        store: RecordStore,
        schema_name: str,
        template: str,
        *,
        txn: Transaction | None = None,
    ) -> None:
        self._store = store
        self._schema_name = schema_name
        self._template = template
        self._txn = txn
        self._entries: dict[Hashable, Record] = {}
        self.misses = 0

    @property
    def schema_name(self) -> str:
        return self._schema_name

    def get(self, key: Any) -> Record:
        """Return the record matching *key*, querying only on a miss.

        Raises:
            NotFoundError: If no row matches; misses that fail are not memoized.
        """
        cached = self._entries.get(key)
        if cached is not None:
            return cached
        self.misses += 1
        record = self._store.registry.new_record(self._schema_name)
        self._store.query_one(record, Predicate(self._template, key), txn=self._txn)
        self._entries[key] = record
        return record

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
