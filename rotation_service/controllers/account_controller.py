# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Self-service account endpoints.
Thin HTTP layer — delegates ALL logic to AccountService.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from rotation_service.controllers.responses import to_response
from rotation_service.core.dependencies import get_account_service, get_acting_user
from rotation_service.models.domain import ActingUser
from rotation_service.services.account_service import AccountService

router = APIRouter(prefix="/api/v1", tags=["Account"])


@router.get("/account/profile")
def get_profile(
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: AccountService = Depends(get_account_service),
):
    """Get the caller's display name."""
    return to_response(service.get_profile(actor))


@router.patch("/account")
def update_account(
    payload: dict[str, Any] = Body(...),
    actor: Optional[ActingUser] = Depends(get_acting_user),
    service: AccountService = Depends(get_account_service),
):
    """Change name, email and/or password of the caller's account."""
    return to_response(service.update_account(payload, actor))
