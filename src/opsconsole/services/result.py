"""ServiceResult and ServiceError — the contract every outer surface consumes.

INVARIANT: All ConsoleService methods return ServiceResult. Hard failures
become ``ok=False`` with an error code; soft failures stay ``ok=True`` and
are listed under ``meta["degraded"]``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for console operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"client_detail"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues the caller should see.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (degradations, telemetry, counts).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def success(
        cls,
        op: str,
        data: dict[str, Any],
        *,
        degraded: list[str] | None = None,
    ) -> ServiceResult:
        meta = {"degraded": list(degraded)} if degraded else None
        return cls(ok=True, op=op, data=data, meta=meta)

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )
