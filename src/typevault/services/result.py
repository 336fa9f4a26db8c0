"""The value every service operation returns.

Commands never see exceptions from services: schema problems, unknown
types and bad arguments come back as ``ok=False`` results with a stable
error code, and audit findings come back as data on an ``ok=True`` one.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ServiceError(BaseModel):
    """Why an operation failed: a stable ``code``, a readable ``message``."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service call.

    Attributes:
        ok: False only when the operation could not run at all. An audit
            that finds errors is still ``ok``.
        op: Operation name, used to pick a renderer (``"audit"``,
            ``"schema_show"``, ``"migrate_diff"``...).
        data: Operation payload.
        warnings: Non-fatal notes, printed to stderr in text mode.
        error: Set exactly when ``ok`` is False.
        meta: Free-form extras.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _error_matches_ok(self) -> ServiceResult:
        if self.ok == (self.error is not None):
            raise ValueError("error must be set exactly when ok is False")
        return self

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        """An ``ok=False`` result; keyword arguments become ``error.detail``."""
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))
