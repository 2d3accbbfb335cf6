# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Validation layer — payload rules for account and project mutations.

Every ``validate_*`` function is pure: it returns ``(value, [])`` when the
payload is accepted and ``(None, issues)`` otherwise. Field rules come from
the pydantic models below; cross-field rules run on the raw payload so that
all violations are reported together.
"""

from datetime import date
from typing import Annotated, Any, Callable, Mapping, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

from rotation_service.core.errors import FieldIssue

RoleTag = Annotated[str, StringConstraints(min_length=1, max_length=100)]

M = TypeVar("M", bound=BaseModel)


# ── Models ──

class AccountUpdate(BaseModel):
    """Self-service account change. Absent fields are left untouched."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = Field(
        default=None, min_length=6, alias="currentPassword"
    )
    new_password: Optional[str] = Field(default=None, min_length=6, alias="newPassword")
    confirm_new_password: Optional[str] = Field(
        default=None, min_length=6, alias="confirmNewPassword"
    )

    @property
    def touches_credentials(self) -> bool:
        return any(
            value is not None
            for value in (
                self.current_password,
                self.new_password,
                self.confirm_new_password,
                self.email,
            )
        )


class ProjectCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    rotation_period_days: int = Field(
        ..., strict=True, ge=1, le=365, alias="rotationPeriodDays"
    )
    start_date: date = Field(..., alias="startDate")
    assignees: list[RoleTag] = Field(..., min_length=1)
    reviewers: list[RoleTag] = Field(..., min_length=1)

    @field_validator("rotation_period_days", mode="before")
    @classmethod
    def _whole_days(cls, value: Any) -> Any:
        # JSON numbers like 30.0 are whole days; fractions, bools and strings still fail.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("start_date", mode="before")
    @classmethod
    def _iso_date_only(cls, value: Any) -> Any:
        if not isinstance(value, (str, date)):
            raise ValueError("start date must be an ISO date string")
        return value


class RotationUpdate(BaseModel):
    assignees: list[RoleTag] = Field(..., min_length=1)
    reviewers: list[RoleTag] = Field(..., min_length=1)


# ── Messages keyed by (wire field, pydantic error type) ──

_MESSAGES: dict[tuple[str, str], str] = {
    ("name", "string_too_long"): "Name is too long.",
    ("email", "value_error"): "This is not a valid email.",
    ("currentPassword", "string_too_short"): "Password must be at least 6 characters.",
    ("newPassword", "string_too_short"): "Password must be at least 6 characters.",
    ("confirmNewPassword", "string_too_short"): "Password must be at least 6 characters.",
    ("description", "string_too_long"): "Description is too long.",
    ("rotationPeriodDays", "missing"): "Rotation period is required.",
    ("rotationPeriodDays", "int_type"): "Rotation period must be a whole number of days.",
    ("rotationPeriodDays", "greater_than_equal"): "Rotation period must be at least 1 day.",
    ("rotationPeriodDays", "less_than_equal"): "Rotation period cannot exceed 365 days.",
    ("startDate", "missing"): "Start date is required.",
    ("assignees", "missing"): "At least one assignee role is required.",
    ("assignees", "too_short"): "At least one assignee role is required.",
    ("assignees", "string_too_short"): "Assignee name cannot be empty.",
    ("assignees", "string_too_long"): "Assignee name is too long.",
    ("reviewers", "missing"): "At least one reviewer role is required.",
    ("reviewers", "too_short"): "At least one reviewer role is required.",
    ("reviewers", "string_too_short"): "Reviewer name cannot be empty.",
    ("reviewers", "string_too_long"): "Reviewer name is too long.",
}

_PROJECT_NAME_MESSAGES: dict[str, str] = {
    "missing": "Project name is required.",
    "string_too_short": "Project name is required.",
    "string_too_long": "Project name is too long.",
}

_START_DATE_INVALID = "Start date must be a valid ISO date (YYYY-MM-DD)."


def _wire_name(model: type[BaseModel], field: str) -> str:
    info = model.model_fields.get(field)
    if info is not None and info.alias:
        return info.alias
    return field


def _issues_from(
    model: type[BaseModel],
    exc: ValidationError,
    message_for: Callable[[str, str, str], str],
) -> list[FieldIssue]:
    issues: list[FieldIssue] = []
    for err in exc.errors():
        loc = list(err["loc"])
        if loc and isinstance(loc[0], str):
            loc[0] = _wire_name(model, loc[0])
        field = loc[0] if loc else ""
        path = ".".join(str(part) for part in loc)
        issues.append(
            FieldIssue(path=path, message=message_for(str(field), err["type"], err["msg"]))
        )
    return issues


def _account_message(field: str, error_type: str, default: str) -> str:
    return _MESSAGES.get((field, error_type), default)


def _project_message(field: str, error_type: str, default: str) -> str:
    if field == "name":
        return _PROJECT_NAME_MESSAGES.get(error_type, default)
    if field == "startDate" and error_type != "missing":
        return _START_DATE_INVALID
    return _MESSAGES.get((field, error_type), default)


def _not_an_object() -> list[FieldIssue]:
    return [FieldIssue(path="", message="Payload must be an object.")]


def _blank(value: Any) -> Any:
    return None if isinstance(value, str) and value == "" else value


def _pick(data: Mapping[str, Any], wire: str, name: str) -> Any:
    if wire in data:
        return data[wire]
    return data.get(name)


# ── Account ──

def _account_cross_field_issues(values: dict[str, Any]) -> list[FieldIssue]:
    current = values["currentPassword"]
    new = values["newPassword"]
    confirm = values["confirmNewPassword"]
    issues: list[FieldIssue] = []

    if (new is not None or confirm is not None) and (
        new is None or confirm is None or current is None
    ):
        issues.append(FieldIssue(
            path="currentPassword",
            message="Current password and both new password fields must be filled.",
        ))
    if new is not None and confirm is not None and new != confirm:
        issues.append(FieldIssue(path="confirmNewPassword", message="Passwords do not match."))
    if values["email"] is not None and current is None:
        issues.append(FieldIssue(
            path="currentPassword",
            message="Current password is required to change email.",
        ))
    if values["name"] is None and values["email"] is None and new is None:
        issues.append(FieldIssue(path="name", message="At least one field must be changed."))
    return issues


def validate_account_update(
    data: Any,
) -> tuple[Optional[AccountUpdate], list[FieldIssue]]:
    if not isinstance(data, Mapping):
        return None, _not_an_object()

    values = {
        _wire_name(AccountUpdate, name): _blank(
            _pick(data, _wire_name(AccountUpdate, name), name)
        )
        for name in AccountUpdate.model_fields
    }

    issues: list[FieldIssue] = []
    accepted: Optional[AccountUpdate] = None
    try:
        accepted = AccountUpdate.model_validate(values)
    except ValidationError as exc:
        issues.extend(_issues_from(AccountUpdate, exc, _account_message))

    issues.extend(_account_cross_field_issues(values))
    if issues:
        return None, issues
    return accepted, []


# ── Project / rotation ──

def _present_fields(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name in model.model_fields:
        wire = _wire_name(model, name)
        if wire in data or name in data:
            value = _pick(data, wire, name)
            if wire == "startDate" and value == "":
                continue
            if wire == "description":
                value = _blank(value)
            values[wire] = value
    return values


def _validate_model(
    model: type[M], data: Any,
) -> tuple[Optional[M], list[FieldIssue]]:
    if not isinstance(data, Mapping):
        return None, _not_an_object()
    try:
        return model.model_validate(_present_fields(model, data)), []
    except ValidationError as exc:
        return None, _issues_from(model, exc, _project_message)


def validate_project_create(
    data: Any,
) -> tuple[Optional[ProjectCreate], list[FieldIssue]]:
    return _validate_model(ProjectCreate, data)


def validate_rotation_update(
    data: Any,
) -> tuple[Optional[RotationUpdate], list[FieldIssue]]:
    return _validate_model(RotationUpdate, data)
