# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
Project and account bodies are plain JSON objects checked by the
validation layer, so their rule violations come back as field issues.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from rotation_service.core.errors import ErrorKind, FieldIssue


class UserUpdateRequest(BaseModel):
    """Body for PATCH /api/v1/users/{user_id}. Omitted fields are left unchanged."""
    name: Optional[str] = Field(default=None, description="Display name")
    is_admin: Optional[bool] = Field(default=None, description="Administrator flag")
    permission: Optional[str] = Field(default=None, description="Permission level: view or edit")


class RotationUpdateRequest(BaseModel):
    assignees: Any = None
    reviewers: Any = None


class ResultResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    issues: list[FieldIssue] = []
    rollback_error: Optional[str] = None
