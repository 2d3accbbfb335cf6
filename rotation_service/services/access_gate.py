# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Access gate — coarse authorization check for admin-only operations.
Stateless; callers deny instead of partially executing when it fails.
"""

from typing import Optional

from rotation_service.core.errors import ErrorKind, OperationResult
from rotation_service.core.logging import get_logger
from rotation_service.metrics.prometheus import ACCESS_DENIED
from rotation_service.models.domain import ActingUser, AuthUser, Profile

logger = get_logger(__name__)


def allow(user: Optional[AuthUser], profile: Optional[Profile]) -> bool:
    return user is not None and profile is not None and profile.is_admin is True


def require_user(actor: Optional[ActingUser]) -> Optional[OperationResult]:
    """Return a failure result when there is no session, otherwise None."""
    if actor is None:
        ACCESS_DENIED.labels(reason="unauthenticated").inc()
        return OperationResult.fail(ErrorKind.UNAUTHENTICATED, "Not authenticated")
    return None


def check_admin(actor: Optional[ActingUser]) -> Optional[OperationResult]:
    """Return a failure result unless the actor is an authenticated admin."""
    denied = require_user(actor)
    if denied is not None:
        return denied
    if not allow(actor.user, actor.profile):
        ACCESS_DENIED.labels(reason="forbidden").inc()
        logger.info("Access denied: admin required", extra={"user_id": actor.id})
        return OperationResult.fail(ErrorKind.FORBIDDEN, "Forbidden - Admin access required")
    return None
