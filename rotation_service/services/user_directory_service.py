# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: User directory — admin-only read, search and mutation of the roster.
Every operation passes the access gate before touching the store.
"""

from typing import Any, Optional

from rotation_service.core.config import settings
from rotation_service.core.errors import (
    ErrorKind,
    FieldIssue,
    OperationResult,
    UpstreamError,
)
from rotation_service.core.ids import parse_id
from rotation_service.core.logging import get_logger
from rotation_service.metrics.prometheus import DIRECTORY_OPERATIONS
from rotation_service.models.domain import (
    ActingUser,
    DirectoryUser,
    Permission,
    UserDetail,
)
from rotation_service.repositories.profile_repository import ProfileRepository
from rotation_service.services.access_gate import check_admin
from rotation_service.services.identity_client import IdentityClient

logger = get_logger(__name__)


def _matches(user: DirectoryUser, needle: str) -> bool:
    return needle in (user.name or "").lower() or needle in (user.email or "").lower()


def _unknown_user(user_id: str) -> OperationResult:
    return OperationResult.fail(ErrorKind.NOT_FOUND, f"No user found with id '{user_id}'")


def _record(operation: str, result: OperationResult) -> OperationResult:
    outcome = "ok" if result.success else result.error_kind.value
    DIRECTORY_OPERATIONS.labels(operation=operation, outcome=outcome).inc()
    if not result.success:
        logger.info("Directory operation refused: %s", result.error, extra={"operation": operation})
    return result


class UserDirectoryService:
    """Business logic for the admin user roster."""

    def __init__(
        self,
        profile_repo: ProfileRepository,
        identity: IdentityClient,
        max_page_size: int = settings.MAX_PAGE_SIZE,
        reset_redirect_url: Optional[str] = settings.PASSWORD_RESET_REDIRECT_URL,
    ) -> None:
        self._profiles = profile_repo
        self._identity = identity
        self._max_page_size = max_page_size
        self._reset_redirect_url = reset_redirect_url

    # ── Queries ──

    def list_users(
        self,
        page: int,
        page_size: int,
        search_query: Optional[str],
        actor: Optional[ActingUser],
    ) -> OperationResult:
        """Filter by name/email (case-insensitive), order by name, then page."""
        denied = check_admin(actor)
        if denied is not None:
            return _record("list", denied)

        issues: list[FieldIssue] = []
        if page < 1:
            issues.append(FieldIssue(path="page", message="Page must be at least 1."))
        if not 1 <= page_size <= self._max_page_size:
            issues.append(FieldIssue(
                path="pageSize",
                message=f"Page size must be between 1 and {self._max_page_size}.",
            ))
        if issues:
            return _record("list", OperationResult.invalid(issues))

        try:
            users = self._profiles.list_users_with_emails()
        except UpstreamError as exc:
            logger.warning("Listing users failed: %s", exc.message)
            return _record("list", OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message))

        needle = (search_query or "").lower()
        if needle.strip():
            users = [u for u in users if _matches(u, needle)]
        users.sort(key=lambda u: ((u.name or "").lower(), u.id))

        offset = (page - 1) * page_size
        return _record("list", OperationResult.ok({
            "users": users[offset:offset + page_size],
            "count": len(users),
        }))

    def get_user(self, user_id: str, actor: Optional[ActingUser]) -> OperationResult:
        """Profile plus permission level; a missing permission row means ``view``."""
        denied = check_admin(actor)
        if denied is not None:
            return _record("get", denied)

        target = parse_id(user_id)
        try:
            user = self._profiles.get_user_with_email(target) if target else None
            if user is None:
                return _record("get", _unknown_user(user_id))
            level = self._profiles.get_permission(target)
        except UpstreamError as exc:
            logger.warning("Fetching user failed: id=%s, error=%s", user_id, exc.message)
            return _record("get", OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message))

        permission = Permission(level) if level in {p.value for p in Permission} else Permission.VIEW
        detail = UserDetail(**user.model_dump(), permission=permission)
        return _record("get", OperationResult.ok(detail))

    # ── Commands ──

    def update_user(
        self,
        user_id: str,
        name: Optional[str],
        is_admin: Optional[bool],
        permission: Any,
        actor: Optional[ActingUser],
    ) -> OperationResult:
        """
        Update whichever of name, admin flag and permission were supplied;
        ``None`` leaves that field as it is. The profile is written first.
        A failed permission write leaves the profile change in place and is
        reported as a partial failure.
        """
        denied = check_admin(actor)
        if denied is not None:
            return _record("update", denied)

        issues: list[FieldIssue] = []
        if name is None and is_admin is None and permission is None:
            issues.append(FieldIssue(path="name", message="At least one field must be changed."))
        if name is not None and len(name) > 100:
            issues.append(FieldIssue(path="name", message="Name is too long."))
        level: Optional[Permission] = None
        if permission is not None:
            try:
                level = Permission(permission)
            except ValueError:
                issues.append(FieldIssue(
                    path="permission", message="Permission must be 'view' or 'edit'."
                ))
        if issues:
            return _record("update", OperationResult.invalid(issues))

        target = parse_id(user_id)
        if target is None:
            return _record("update", _unknown_user(user_id))

        changes = {key: value for key, value in (("name", name), ("is_admin", is_admin))
                   if value is not None}
        try:
            if changes:
                found = self._profiles.update_profile(target, changes)
            else:
                found = self._profiles.get_profile(target) is not None
        except UpstreamError as exc:
            logger.error("Updating user failed: id=%s, error=%s", user_id, exc.message)
            return _record("update", OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message))
        if not found:
            return _record("update", _unknown_user(user_id))

        if level is not None:
            try:
                self._profiles.upsert_permission(target, level.value)
            except UpstreamError as exc:
                logger.warning(
                    "Profile updated but permission not saved: id=%s, error=%s",
                    user_id, exc.message,
                )
                return _record("update", OperationResult.fail(
                    ErrorKind.PARTIAL_FAILURE,
                    f"Profile updated but permission could not be saved: {exc.message}",
                ))

        updated = sorted(changes) + (["permission"] if level is not None else [])
        logger.info("User updated: id=%s, fields=%s, by=%s", target, updated, actor.id)
        return _record("update", OperationResult.ok({"id": target, "updated": updated}))

    def reset_password(self, user_id: str, actor: Optional[ActingUser]) -> OperationResult:
        denied = check_admin(actor)
        if denied is not None:
            return _record("reset_password", denied)

        target = parse_id(user_id)
        try:
            user = self._profiles.get_user_with_email(target) if target else None
        except UpstreamError as exc:
            return _record("reset_password", OperationResult.fail(
                ErrorKind.UPSTREAM_FAILURE, exc.message
            ))
        if user is None or not user.email:
            return _record("reset_password", OperationResult.fail(
                ErrorKind.NOT_FOUND, "User email not found"
            ))

        try:
            self._identity.reset_password_for_email(user.email, self._reset_redirect_url)
        except UpstreamError as exc:
            logger.warning("Password reset failed: id=%s, error=%s", user_id, exc.message)
            return _record("reset_password", OperationResult.fail(
                ErrorKind.UPSTREAM_FAILURE, exc.message
            ))

        logger.info("Password reset email requested: id=%s, by=%s", target, actor.id)
        return _record("reset_password", OperationResult.ok({"id": target}))

    def delete_user(self, user_id: str, actor: Optional[ActingUser]) -> OperationResult:
        denied = check_admin(actor)
        if denied is not None:
            return _record("delete", denied)
        target = parse_id(user_id)
        if target is None:
            return _record("delete", _unknown_user(user_id))
        if target == actor.id:
            return _record("delete", OperationResult.fail(
                ErrorKind.CONFLICT, "Admins cannot delete their own account"
            ))

        try:
            self._identity.admin_delete_user(target)
        except UpstreamError as exc:
            logger.warning("Deleting user failed: id=%s, error=%s", user_id, exc.message)
            return _record("delete", OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message))

        logger.info("User deleted: id=%s, by=%s", target, actor.id)
        return _record("delete", OperationResult.ok({"id": target}))
