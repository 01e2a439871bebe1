"""ServiceResult and ServiceError — the service-layer contract.

INVARIANT: All service-layer methods return ServiceResult; none raise for
data-access failures. The CLI and any network adapter consume this type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from metaagent.errors import MetaAgentError, StorageError

STORAGE_ERROR = "STORAGE_ERROR"
INVALID_PAYLOAD = "INVALID_PAYLOAD"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: MetaAgentError | StorageError) -> ServiceError:
        """Map a core exception onto its stable error code."""
        if isinstance(exc, MetaAgentError):
            detail = dict(exc.detail)
            errors = getattr(exc, "errors", None)
            if errors:
                detail["errors"] = list(errors)
            return cls(code=exc.code, message=exc.message, detail=detail)
        # Driver messages can embed bound parameters; keep only the class name.
        return cls(
            code=STORAGE_ERROR,
            message=f"Storage failure: {type(exc).__name__}",
            detail={"error": type(exc).__name__},
        )


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"create_entity"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry spans, counts).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))
