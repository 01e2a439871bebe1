"""Composable transactions — explicit handles, one owner per call chain.

Independently written data-access calls share one atomic unit of work by
passing a :class:`Transaction` handle down the call chain. Every store
operation takes ``txn=`` and a :class:`TransactionScope` decides, per call,
whether it owns the physical transaction or merely participates in it:

- **Owner** (no handle passed in): opens a connection and a transaction,
  runs the unit of work, commits on a clean return.
- **Participant** (handle passed in): runs the unit of work on the shared
  handle and leaves commit to the owner.

Any failure at any depth rolls the whole unit back; only the owner can make
it durable. Expected errors (:class:`MetaAgentError`, :class:`StorageError`)
propagate unchanged. Anything else is an unexpected failure inside the unit
of work: it is rolled back and surfaces as :class:`TransactionAbortedError`
chained to the original.

Once rolled back, a handle is dead: further statements through it and a
later commit attempt both raise :class:`TransactionAbortedError`.

Usage::

    def transfer(txn: Transaction) -> None:
        store.update_column("account", "balance", 0, Predicate("id = ?", 1), txn=txn)
        agent.with_transaction(lambda inner: store.create(entry, txn=inner), txn=txn)

    agent.with_transaction(transfer)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from metaagent.domain.types import ScopeState, TxnState
from metaagent.errors import MetaAgentError, StorageError, TransactionAbortedError, TransactionError

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine, RootTransaction

logger = logging.getLogger(__name__)

_R = TypeVar("_R")


@dataclass(eq=False)
class Transaction:
    """Handle to one open physical transaction.

    Passed explicitly to every data-access call that should join it.
    """

    _conn: Connection = field(repr=False)
    _root: RootTransaction = field(repr=False)
    txn_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: TxnState = TxnState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is TxnState.ACTIVE

    @property
    def connection(self) -> Connection:
        """The shared connection; refused once the transaction has ended."""
        if self.state is not TxnState.ACTIVE:
            msg = f"Transaction {self.txn_id} is {self.state}; no further statements allowed"
            raise TransactionAbortedError(msg, txn_id=self.txn_id)
        return self._conn

    def rollback(self) -> None:
        """Roll back the physical transaction. A second call is a no-op."""
        if self.state is TxnState.ROLLED_BACK:
            return
        if self.state is TxnState.COMMITTED:
            msg = f"Transaction {self.txn_id} is already committed"
            raise TransactionError(msg, txn_id=self.txn_id)
        self.state = TxnState.ROLLED_BACK
        self._root.rollback()

    def commit(self) -> None:
        """Commit, refusing if any scope already rolled this transaction back."""
        if self.state is TxnState.ROLLED_BACK:
            msg = f"Refusing to commit transaction {self.txn_id}: it was rolled back"
            raise TransactionAbortedError(msg, txn_id=self.txn_id)
        if self.state is TxnState.COMMITTED:
            msg = f"Transaction {self.txn_id} is already committed"
            raise TransactionError(msg, txn_id=self.txn_id)
        self._root.commit()
        self.state = TxnState.COMMITTED


class TransactionScope:
    """One call's participation in a (possibly shared) transaction.

    A scope is single-use: create one per unit of work.
    """

    def __init__(self, engine: Engine, txn: Transaction | None = None) -> None:
        self._engine = engine
        self._txn = txn
        self.owner = txn is None
        self.state = ScopeState.NOT_STARTED

    def run(self, work: Callable[[Transaction], _R]) -> _R:
        """Run *work* with the scope's transaction handle and return its result."""
        with self.enter() as txn:
            return work(txn)

    @contextmanager
    def enter(self) -> Iterator[Transaction]:
        """Context-manager form of :meth:`run`."""
        if self.state is not ScopeState.NOT_STARTED:
            msg = f"TransactionScope already {self.state}; scopes are single-use"
            raise TransactionError(msg)
        self.state = ScopeState.RUNNING

        conn: Connection | None = None
        if self.owner:
            conn = self._engine.connect()
            try:
                txn = Transaction(conn, conn.begin())
            except BaseException:
                conn.close()
                self.state = ScopeState.ROLLED_BACK
                raise
            logger.debug("Opened transaction %s", txn.txn_id)
        else:
            assert self._txn is not None
            txn = self._txn
            if not txn.is_active:
                self.state = ScopeState.ROLLED_BACK
                msg = f"Cannot join transaction {txn.txn_id}: it is {txn.state}"
                raise TransactionAbortedError(msg, txn_id=txn.txn_id)

        try:
            try:
                yield txn
            except (MetaAgentError, StorageError):
                self._abort(txn)
                raise
            except Exception as exc:
                self._abort(txn)
                msg = f"Unit of work in transaction {txn.txn_id} failed: {exc!r}"
                raise TransactionAbortedError(msg, txn_id=txn.txn_id) from exc
            except BaseException:
                self._abort(txn)
                raise

            if not self.owner:
                self.state = ScopeState.DEFERRED
                return
            try:
                txn.commit()
            except BaseException:
                self._abort(txn)
                raise
            self.state = ScopeState.COMMITTED
            logger.debug("Committed transaction %s", txn.txn_id)
        finally:
            if conn is not None:
                conn.close()

    def _abort(self, txn: Transaction) -> None:
        """Roll back *txn*; a failing rollback must not mask the original error."""
        self.state = ScopeState.ROLLED_BACK
        if not txn.is_active:
            return
        try:
            txn.rollback()
        except StorageError:
            logger.warning("Rollback of transaction %s failed", txn.txn_id, exc_info=True)
        else:
            logger.debug(
                "Rolled back transaction %s (%s)",
                txn.txn_id,
                "owner" if self.owner else "participant",
            )
