# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy and the discriminated result every public operation returns.

Client layers raise ``UpstreamError`` subclasses; services catch them at
their own boundary and hand back ``OperationResult.fail(...)``.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    PARTIAL_FAILURE = "partial_failure"
    UPSTREAM_FAILURE = "upstream_failure"


class FieldIssue(BaseModel):
    """A single rejected field: dotted wire path plus a human message."""
    path: str
    message: str


class OperationResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    issues: list[FieldIssue] = Field(default_factory=list)
    rollback_error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        issues: Optional[list[FieldIssue]] = None,
        rollback_error: Optional[str] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            error=message,
            error_kind=kind,
            issues=issues or [],
            rollback_error=rollback_error,
        )

    @classmethod
    def invalid(cls, issues: list[FieldIssue]) -> "OperationResult":
        return cls.fail(ErrorKind.VALIDATION, "Validation failed", issues=issues)


# ── Upstream exceptions (raised by clients, never past a service) ──

class UpstreamError(Exception):
    """Opaque failure reported by the store or the identity provider."""

    target = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StoreError(UpstreamError):
    target = "store"


class IdentityError(UpstreamError):
    target = "identity"
