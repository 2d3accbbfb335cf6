# type: ignore
"""
Shared fixtures: an in-memory SQLite store shaped like the production
schema, and a fake identity provider standing in for the auth API.
"""
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_SERVICE_KEY", "test-service-key")

from typing import Optional

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from rotation_service.core.errors import IdentityError
from rotation_service.models.domain import ActingUser, AuthUser, Profile
from rotation_service.repositories.profile_repository import ProfileRepository
from rotation_service.repositories.project_repository import ProjectRepository
from rotation_service.repositories.rotation_repository import RotationRepository
from rotation_service.services.account_service import AccountService
from rotation_service.services.project_service import ProjectService
from rotation_service.services.user_directory_service import UserDirectoryService

SCHEMA = (
    """CREATE TABLE projects (
        id TEXT PRIMARY KEY, name TEXT NOT NULL, description TEXT,
        rotation_period_days INTEGER NOT NULL, start_date DATE NOT NULL,
        created_by TEXT NOT NULL, state TEXT NOT NULL DEFAULT 'active')""",
    """CREATE TABLE rotations (
        id TEXT PRIMARY KEY, project_id TEXT NOT NULL, start_date DATE NOT NULL,
        end_date DATE NOT NULL, assignees TEXT NOT NULL, reviewers TEXT NOT NULL)""",
    """CREATE TABLE project_members (
        project_id TEXT NOT NULL, user_id TEXT NOT NULL, role TEXT NOT NULL,
        PRIMARY KEY (project_id, user_id))""",
    """CREATE TABLE profiles (
        id TEXT PRIMARY KEY, name TEXT NOT NULL DEFAULT '',
        is_admin BOOLEAN NOT NULL DEFAULT 0)""",
    "CREATE TABLE auth_users (id TEXT PRIMARY KEY, email TEXT)",
    """CREATE TABLE user_permissions (
        user_id TEXT PRIMARY KEY, permission_level TEXT NOT NULL)""",
    """CREATE VIEW users_with_emails AS
        SELECT p.id AS id, p.name AS name, a.email AS email, p.is_admin AS is_admin
        FROM profiles p LEFT JOIN auth_users a ON a.id = p.id""",
)


def uid(handle: str) -> str:
    """Stable UUID for a readable test handle such as ``u-admin``."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"rota-test/{handle}"))


class FakeIdentityProvider:
    """In-memory stand-in for IdentityClient, recording every call."""

    def __init__(self):
        self.tokens: dict[str, AuthUser] = {}
        self.passwords: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.failures: dict[str, IdentityError] = {}
        self.deleted: list[str] = []
        self.reset_requests: list[tuple[str, Optional[str]]] = []

    def register(self, user_id: str, email: str, password: str = "secret123") -> str:
        token = f"token-{user_id}"
        self.tokens[token] = AuthUser(id=user_id, email=email, access_token=token)
        self.passwords[email] = password
        return token

    def fail(self, method: str, message: str, status_code: Optional[int] = 400):
        self.failures[method] = IdentityError(message, status_code=status_code)

    def _maybe_fail(self, method: str):
        if method in self.failures:
            raise self.failures[method]

    def get_user(self, access_token):
        self.calls.append(("get_user", access_token))
        self._maybe_fail("get_user")
        if access_token not in self.tokens:
            raise IdentityError("invalid JWT", status_code=401)
        return self.tokens[access_token]

    def sign_in_with_password(self, email, password):
        self.calls.append(("sign_in_with_password", email))
        self._maybe_fail("sign_in_with_password")
        if self.passwords.get(email) != password:
            raise IdentityError("Invalid login credentials", status_code=400)
        return {"access_token": "fresh"}

    def update_user(self, access_token, email=None, password=None):
        self.calls.append(("update_user", access_token, email, password))
        self._maybe_fail("update_user")
        if email is not None and email in self.passwords:
            raise IdentityError(
                "Email address already registered by another user",
                status_code=422,
            )
        return {"id": "updated"}

    def reset_password_for_email(self, email, redirect_to=None):
        self.calls.append(("reset_password_for_email", email))
        self._maybe_fail("reset_password_for_email")
        self.reset_requests.append((email, redirect_to))

    def admin_delete_user(self, user_id):
        self.calls.append(("admin_delete_user", user_id))
        self._maybe_fail("admin_delete_user")
        self.deleted.append(user_id)

    def called(self, method: str) -> bool:
        return any(call[0] == method for call in self.calls)


# ============================================
# Store
# ============================================
@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with eng.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    yield eng
    eng.dispose()


@pytest.fixture
def project_repo(engine):
    return ProjectRepository(engine)


@pytest.fixture
def rotation_repo(engine):
    return RotationRepository(engine)


@pytest.fixture
def profile_repo(engine):
    return ProfileRepository(engine, users_source="users_with_emails")


@pytest.fixture
def identity():
    return FakeIdentityProvider()


# ============================================
# Services
# ============================================
@pytest.fixture
def project_service(project_repo, rotation_repo):
    return ProjectService(project_repo=project_repo, rotation_repo=rotation_repo)


@pytest.fixture
def account_service(profile_repo, identity):
    return AccountService(profile_repo=profile_repo, identity=identity)


@pytest.fixture
def directory_service(profile_repo, identity):
    return UserDirectoryService(
        profile_repo=profile_repo,
        identity=identity,
        max_page_size=50,
        reset_redirect_url="https://rota.example.com/reset-password",
    )


# ============================================
# People
# ============================================
@pytest.fixture
def add_user(engine, identity):
    """Insert a profile + auth email and register the identity; returns an ActingUser."""

    def _add(handle, name, email, is_admin=False, password="secret123"):
        user_id = uid(handle)
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO profiles (id, name, is_admin) VALUES (:id, :name, :adm)"),
                {"id": user_id, "name": name, "adm": is_admin},
            )
            conn.execute(
                text("INSERT INTO auth_users (id, email) VALUES (:id, :email)"),
                {"id": user_id, "email": email},
            )
        token = identity.register(user_id, email, password)
        return ActingUser(
            user=AuthUser(id=user_id, email=email, access_token=token),
            profile=Profile(id=user_id, name=name, is_admin=is_admin),
        )

    return _add


@pytest.fixture
def admin(add_user):
    return add_user("u-admin", "Ada Admin", "ada@rota.example.com", is_admin=True)


@pytest.fixture
def member(add_user):
    return add_user("u-member", "Milo Member", "milo@rota.example.com")


def count_rows(engine, table: str) -> int:
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
