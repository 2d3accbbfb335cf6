# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Self-service account management.

``update_account`` is an ordered, fail-fast pipeline: verify the current
password, change email, change password, then write the profile name.
Steps that already succeeded are not undone when a later one fails.
"""

from typing import Any, Optional

from rotation_service.core.errors import (
    ErrorKind,
    IdentityError,
    OperationResult,
    UpstreamError,
)
from rotation_service.core.logging import get_logger
from rotation_service.metrics.prometheus import ACCOUNT_UPDATES
from rotation_service.models.domain import ActingUser
from rotation_service.repositories.profile_repository import ProfileRepository
from rotation_service.schemas.validation import AccountUpdate, validate_account_update
from rotation_service.services.access_gate import require_user
from rotation_service.services.identity_client import IdentityClient

logger = get_logger(__name__)

EMAIL_TAKEN_SIGNAL = "already registered"
# Provider statuses that mean "these credentials are wrong" rather than an outage.
REJECTED_CREDENTIAL_STATUSES = {400, 401, 403, 422}


class AccountService:
    def __init__(self, profile_repo: ProfileRepository, identity: IdentityClient) -> None:
        self._profiles = profile_repo
        self._identity = identity

    def get_profile(self, actor: Optional[ActingUser]) -> OperationResult:
        denied = require_user(actor)
        if denied is not None:
            return denied
        try:
            profile = self._profiles.get_profile(actor.id)
        except UpstreamError as exc:
            return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)
        if profile is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Profile not found")
        return OperationResult.ok({"name": profile.name})

    def update_account(self, payload: Any, actor: Optional[ActingUser]) -> OperationResult:
        denied = require_user(actor)
        if denied is not None:
            return denied

        if isinstance(payload, AccountUpdate):
            data = payload
        else:
            data, issues = validate_account_update(payload)
            if issues:
                return OperationResult.invalid(issues)

        result = self._apply(data, actor)
        outcome = "ok" if result.success else result.error_kind.value
        ACCOUNT_UPDATES.labels(outcome=outcome).inc()
        return result

    # ── Pipeline ──

    def _apply(self, data: AccountUpdate, actor: ActingUser) -> OperationResult:
        applied: list[str] = []
        token = actor.user.access_token

        if data.touches_credentials:
            try:
                self._identity.sign_in_with_password(actor.email or "", data.current_password or "")
            except IdentityError as exc:
                if exc.status_code in REJECTED_CREDENTIAL_STATUSES:
                    logger.info("Password verification rejected: user=%s", actor.id)
                    return OperationResult.fail(
                        ErrorKind.INVALID_CREDENTIALS, "Current password is incorrect"
                    )
                return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)

        if data.email is not None and data.email != actor.email:
            try:
                self._identity.update_user(token, email=data.email)
            except IdentityError as exc:
                if EMAIL_TAKEN_SIGNAL in exc.message:
                    return OperationResult.fail(ErrorKind.CONFLICT, "Email already in use")
                return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)
            applied.append("email")
            logger.info("Email change requested: user=%s", actor.id)

        if data.new_password is not None:
            try:
                self._identity.update_user(token, password=data.new_password)
            except IdentityError as exc:
                return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)
            applied.append("password")
            logger.info("Password changed: user=%s", actor.id)

        if data.name is not None:
            try:
                found = self._profiles.update_profile(actor.id, {"name": data.name})
            except UpstreamError as exc:
                return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)
            if not found:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Profile not found")
            applied.append("name")

        logger.info("Account updated: user=%s, applied=%s", actor.id, applied)
        return OperationResult.ok({"updated": applied})
