# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Admin user-directory endpoints.
Thin HTTP layer — delegates ALL logic to UserDirectoryService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from rotation_service.controllers.responses import to_response
from rotation_service.core.config import settings
from rotation_service.core.dependencies import get_acting_user, get_user_directory_service
from rotation_service.models.domain import ActingUser
from rotation_service.schemas.api import UserUpdateRequest
from rotation_service.services.user_directory_service import UserDirectoryService

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.get("/users")
def list_users(
    page: int = Query(default=1, description="1-based page number"),
    page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, alias="pageSize"),
    search: str = Query(default="", description="Substring of name or email"),
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    """Paginated, searchable user roster."""
    return to_response(service.list_users(page, page_size, search, actor))


@router.get("/users/{user_id}")
def get_user(
    user_id: str,
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    return to_response(service.get_user(user_id, actor))


@router.patch("/users/{user_id}")
def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    """Update any of a user's name, admin flag and permission level."""
    return to_response(service.update_user(
        user_id,
        name=payload.name,
        is_admin=payload.is_admin,
        permission=payload.permission,
        actor=actor,
    ))


@router.post("/users/{user_id}/reset-password")
def reset_password(
    user_id: str,
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    """Send the user a password-reset email."""
    return to_response(service.reset_password(user_id, actor))


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    return to_response(service.delete_user(user_id, actor))
