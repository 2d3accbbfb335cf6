# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire repositories, clients and services.
The caller's identity is resolved per request and handed to services
explicitly; no service reads ambient session state.
"""

from typing import Optional

import httpx
from fastapi import Depends, Header
from sqlalchemy.engine import Engine

from rotation_service.core.config import settings
from rotation_service.core.database import engine
from rotation_service.core.errors import IdentityError, UpstreamError
from rotation_service.core.logging import get_logger
from rotation_service.models.domain import ActingUser
from rotation_service.repositories.profile_repository import ProfileRepository
from rotation_service.repositories.project_repository import ProjectRepository
from rotation_service.repositories.rotation_repository import RotationRepository
from rotation_service.services.account_service import AccountService
from rotation_service.services.identity_client import IdentityClient
from rotation_service.services.project_service import ProjectService
from rotation_service.services.user_directory_service import UserDirectoryService

logger = get_logger(__name__)

# Provider statuses meaning the token itself is bad, as opposed to an outage.
REJECTED_TOKEN_STATUSES = {401, 403}

# ── Singleton clients and repositories ──
_http_client = httpx.Client(timeout=settings.AUTH_TIMEOUT)
_identity_client = IdentityClient(
    _http_client,
    base_url=settings.AUTH_URL,
    anon_key=settings.AUTH_ANON_KEY,
    service_key=settings.AUTH_SERVICE_KEY,
)
_project_repo = ProjectRepository(engine)
_rotation_repo = RotationRepository(engine)
_profile_repo = ProfileRepository(engine, users_source=settings.USERS_DIRECTORY_SOURCE)

# ── Service instances (with injected dependencies) ──
_project_service = ProjectService(project_repo=_project_repo, rotation_repo=_rotation_repo)
_account_service = AccountService(profile_repo=_profile_repo, identity=_identity_client)
_directory_service = UserDirectoryService(profile_repo=_profile_repo, identity=_identity_client)


def close_http_client() -> None:
    _http_client.close()


# ── FastAPI dependency functions ──
def get_engine() -> Engine:
    return engine


def get_identity_client() -> IdentityClient:
    return _identity_client


def get_profile_repo() -> ProfileRepository:
    return _profile_repo


def get_project_service() -> ProjectService:
    return _project_service


def get_account_service() -> AccountService:
    return _account_service


def get_user_directory_service() -> UserDirectoryService:
    return _directory_service


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_acting_user(
    token: Optional[str] = Depends(get_bearer_token),
    identity: IdentityClient = Depends(get_identity_client),
    profiles: ProfileRepository = Depends(get_profile_repo),
) -> Optional[ActingUser]:
    """
    Resolve the bearer token to an ActingUser, or None for anonymous callers
    and tokens the provider rejects. Provider outages and store failures
    propagate as UpstreamError and are rendered by the app as 502.
    """
    if token is None:
        return None
    try:
        user = identity.get_user(token)
    except IdentityError as exc:
        if exc.status_code in REJECTED_TOKEN_STATUSES:
            logger.info("Bearer token rejected: %s", exc.message)
            return None
        logger.warning("Token resolution failed: status=%s, error=%s", exc.status_code, exc.message)
        raise
    try:
        profile = profiles.get_profile(user.id)
    except UpstreamError as exc:
        logger.warning("Profile lookup failed for user=%s: %s", user.id, exc.message)
        raise
    return ActingUser(user=user, profile=profile)
