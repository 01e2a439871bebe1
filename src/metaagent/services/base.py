"""BaseService — foundation for all metaagent services.

Every service receives an opened :class:`MetaAgent` at construction time.
Services own their transaction boundaries via ``self._agent.transaction()``
and translate core exceptions into :class:`ServiceResult` failures.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from metaagent.errors import MetaAgentError, StorageError
from metaagent.services.result import INVALID_PAYLOAD, ServiceError, ServiceResult

if TYPE_CHECKING:
    from metaagent.infrastructure.agent import MetaAgent

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class EntityService(BaseService):
            def create(self, schema_name: str, payload: dict) -> ServiceResult:
                try:
                    with self._agent.transaction() as txn:
                        ...
                except (MetaAgentError, StorageError) as exc:
                    return self._fail("create_entity", exc)
    """

    def __init__(self, agent: MetaAgent) -> None:
        self._agent = agent

    @staticmethod
    def _fail(op: str, exc: MetaAgentError | StorageError) -> ServiceResult:
        error = ServiceError.from_exception(exc)
        if isinstance(exc, StorageError):
            logger.warning("%s failed in storage", op, exc_info=True)
        else:
            logger.debug("%s failed: %s %s", op, error.code, error.message)
        return ServiceResult(ok=False, op=op, error=error)

    @staticmethod
    def _invalid_payload(op: str, exc: PydanticValidationError) -> ServiceResult:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
        return ServiceResult.failure(
            op,
            INVALID_PAYLOAD,
            f"Invalid payload: {'; '.join(problems)}",
            errors=problems,
        )
