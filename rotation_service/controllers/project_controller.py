# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Project and rotation endpoints.
Thin HTTP layer — delegates ALL logic to ProjectService.
"""

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from rotation_service.controllers.responses import to_response
from rotation_service.core.dependencies import get_acting_user, get_project_service
from rotation_service.models.domain import ActingUser
from rotation_service.schemas.api import RotationUpdateRequest
from rotation_service.services.project_service import ProjectService

router = APIRouter(prefix="/api/v1", tags=["Projects"])


@router.post("/projects", status_code=201)
def create_project(
    payload: dict[str, Any] = Body(...),
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: ProjectService = Depends(get_project_service),
):
    """Create a project with its first rotation; the caller becomes its admin."""
    return to_response(service.create_project(payload, actor), success_status=201)


@router.get("/projects/{project_id}")
def get_project(
    project_id: str,
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: ProjectService = Depends(get_project_service),
):
    """Get a project and its rotations."""
    return to_response(service.get_project(project_id, actor))


@router.get("/projects/{project_id}/rotations/current")
def get_current_rotation(
    project_id: str,
    on: Optional[date] = Query(default=None, description="Date to resolve (default today)"),
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: ProjectService = Depends(get_project_service),
):
    """Resolve the rotation window containing a date and its role holders."""
    return to_response(service.get_current_rotation(project_id, actor, on_date=on))


@router.patch("/rotations/{rotation_id}")
def update_rotation(
    rotation_id: str,
    payload: RotationUpdateRequest,
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: ProjectService = Depends(get_project_service),
):
    """Replace a rotation's assignee and reviewer role sequences."""
    return to_response(
        service.update_rotation(rotation_id, payload.assignees, payload.reviewers, actor)
    )
