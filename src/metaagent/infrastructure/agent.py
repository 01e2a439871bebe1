"""MetaAgent — the explicitly constructed core object.

A MetaAgent owns the schema registry, the database engine, the record
store, and the relation graph. Construction is cheap and touches nothing;
:meth:`MetaAgent.open` does the work:

1. registers the built-in ``entity_relation`` schema,
2. creates the engine from settings,
3. creates any missing tables,
4. seals the registry.

Schemas are registered (directly or through plugins) before ``open()``.
Using the store before ``open()`` raises :class:`NotInitializedError`.

Usage::

    agent = MetaAgent(MetaAgentSettings.load())
    agent.register(Book, Author)
    with agent:
        with agent.transaction() as txn:
            agent.store.create(book, txn=txn)
            agent.relations.create_relation(edge, txn=txn)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from metaagent.config.settings import MetaAgentSettings
from metaagent.domain.relation import RELATION_SCHEMA, EntityRelation
from metaagent.errors import InitializationError, NotInitializedError, StorageError
from metaagent.infrastructure.database.engine import create_db_engine, init_database
from metaagent.infrastructure.database.schema import SchemaRegistry
from metaagent.infrastructure.repositories.records import RecordStore
from metaagent.infrastructure.repositories.relations import RelationGraph
from metaagent.infrastructure.transaction import Transaction, TransactionScope

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from metaagent.domain.records import Record

logger = logging.getLogger(__name__)

_R = TypeVar("_R")


class MetaAgent:
    """Registry, engine, store and relation graph behind one handle.

    Services receive the agent via their :class:`BaseService` constructor.
    """

    def __init__(
        self,
        settings: MetaAgentSettings | None = None,
        *,
        registry: SchemaRegistry | None = None,
    ) -> None:
        self._settings = settings if settings is not None else MetaAgentSettings.load()
        self._registry = registry if registry is not None else SchemaRegistry()
        self._engine: Engine | None = None
        self._store: RecordStore | None = None
        self._relations: RelationGraph | None = None
        self._plugin_names: list[str] = []

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    @property
    def settings(self) -> MetaAgentSettings:
        return self._settings

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def plugin_names(self) -> list[str]:
        """Plugins whose schemas were collected by :meth:`load_plugins`."""
        return list(self._plugin_names)

    def register(self, *record_classes: type[Record]) -> None:
        """Register one or more schemas. Must happen before :meth:`open`."""
        for record_cls in record_classes:
            self._registry.register(record_cls)

    def load_plugins(self, local_dir: Path | None = None) -> list[str]:
        """Discover plugins and register every schema they contribute.

        Entry-point plugins (group ``metaagent.plugins``) and ``*.py`` files
        in the configured local plugin directory are both consulted.
        Returns the names of plugins that contributed schemas.
        """
        from metaagent.plugins.manager import PluginManager

        if not self._settings.plugins.enabled:
            logger.debug("Plugin discovery disabled by configuration")
            return []

        pm = PluginManager()
        pm.discover_and_load(local_dir=local_dir or self._settings.plugin_dir)
        loaded: list[str] = []
        for plugin_name, record_classes in pm.collect_schemas().items():
            for record_cls in record_classes:
                try:
                    self._registry.register(record_cls)
                except (TypeError, ValueError):
                    logger.warning(
                        "Skipping schema %s from plugin %s",
                        record_cls.__qualname__,
                        plugin_name,
                        exc_info=True,
                    )
            loaded.append(plugin_name)
        self._plugin_names.extend(loaded)
        return loaded

    def open(self) -> MetaAgent:
        """Build the engine, create tables and seal the registry. Idempotent.

        Raises:
            InitializationError: Engine creation or table setup failed.
        """
        if self._engine is not None:
            return self

        if RELATION_SCHEMA not in self._registry:
            self._registry.register(EntityRelation)

        url = self._settings.database_url
        shown = url.render_as_string(hide_password=True)
        db = self._settings.database
        try:
            engine = create_db_engine(url, echo=db.echo, pool=db.pool)
        except (StorageError, OSError) as exc:
            msg = f"Could not open database {shown}: {exc}"
            raise InitializationError(msg, url=shown) from exc
        try:
            init_database(engine, self._registry.metadata)
        except (StorageError, OSError) as exc:
            engine.dispose()
            msg = f"Could not open database {shown}: {exc}"
            raise InitializationError(msg, url=shown) from exc

        self._registry.seal()
        self._engine = engine
        self._store = RecordStore(engine, self._registry)
        self._relations = RelationGraph(self._store, self._registry)
        logger.debug(
            "Opened metaagent on %s with %d schemas",
            url.get_backend_name(),
            len(self._registry),
        )
        return self

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._store = None
        self._relations = None

    def __enter__(self) -> MetaAgent:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        if self._engine is None:
            raise self._not_open("engine")
        return self._engine

    @property
    def store(self) -> RecordStore:
        if self._store is None:
            raise self._not_open("store")
        return self._store

    @property
    def relations(self) -> RelationGraph:
        if self._relations is None:
            raise self._not_open("relations")
        return self._relations

    @contextmanager
    def transaction(self, txn: Transaction | None = None) -> Iterator[Transaction]:
        """Join *txn* if given, else own a new transaction for the block.

        Usage::

            with agent.transaction() as txn:
                agent.store.create(author, txn=txn)
                save_books(agent, txn)  # may open its own participant scope
        """
        with TransactionScope(self.engine, txn).enter() as handle:
            yield handle

    def with_transaction(
        self,
        work: Callable[[Transaction], _R],
        *,
        txn: Transaction | None = None,
    ) -> _R:
        """Run ``work(txn)`` in an owner or participant scope and return its result."""
        return TransactionScope(self.engine, txn).run(work)

    @staticmethod
    def _not_open(what: str) -> NotInitializedError:
        msg = f"MetaAgent.{what} used before open()"
        return NotInitializedError(msg)

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        details: dict[str, Any] = {"schemas": self._registry.names()}
        return f"<MetaAgent {state} {details}>"
