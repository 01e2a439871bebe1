"""State enums for transaction handles and transaction scopes."""

from __future__ import annotations

from enum import StrEnum


class TxnState(StrEnum):
    """Lifecycle of one physical transaction shared along a call chain."""

    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ScopeState(StrEnum):
    """Lifecycle of one TransactionScope call.

    ``DEFERRED`` is the clean exit of a participant: it neither commits nor
    rolls back, leaving the decision to the owning scope.
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    DEFERRED = "deferred"
