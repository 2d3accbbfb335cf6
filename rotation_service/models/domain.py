# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ProjectState(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Permission(str, Enum):
    VIEW = "view"
    EDIT = "edit"


class Project(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    rotation_period_days: int
    start_date: date
    created_by: str
    state: ProjectState = ProjectState.ACTIVE


class Rotation(BaseModel):
    """One rotation window with the role tags responsible during it."""
    id: str
    project_id: str
    start_date: date
    end_date: date
    assignees: list[str]
    reviewers: list[str]


class ProjectMember(BaseModel):
    project_id: str
    user_id: str
    role: str


class Profile(BaseModel):
    id: str
    name: str = ""
    is_admin: bool = False


class DirectoryUser(BaseModel):
    """Row shape of the users-with-emails aggregation."""
    id: str
    name: str = ""
    email: Optional[str] = None
    is_admin: bool = False


class UserDetail(DirectoryUser):
    permission: Permission = Permission.VIEW


class AuthUser(BaseModel):
    """Identity resolved from a bearer token by the identity provider."""
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = Field(default=None, exclude=True, repr=False)


class ActingUser(BaseModel):
    """The caller of an operation: identity plus its profile, if one exists."""
    user: AuthUser
    profile: Optional[Profile] = None

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def email(self) -> Optional[str]:
        return self.user.email
