# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
HTTP tests for the Rotation Service: routing, status mapping, auth
resolution, middleware and system endpoints.
"""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from main import app
from rotation_service.core.config import settings
from rotation_service.core.dependencies import (
    get_account_service,
    get_engine,
    get_identity_client,
    get_profile_repo,
    get_project_service,
    get_user_directory_service,
)
from rotation_service.core.errors import StoreError
from rotation_service.core.logging import JSONFormatter, request_id_var
from rotation_service.middleware import normalize_path

client = TestClient(app)


def _auth(actor):
    return {"Authorization": f"Bearer {actor.user.access_token}"}


def _project_body(**overrides):
    body = {
        "name": "Platform on-call",
        "rotationPeriodDays": 30,
        "startDate": "2024-01-01",
        "assignees": ["primary", "backup"],
        "reviewers": ["lead"],
    }
    body.update(overrides)
    return body


# ============================================
# Fixtures
# ============================================
@pytest.fixture(autouse=True)
def wired(engine, identity, profile_repo, project_service, account_service, directory_service):
    """Point every dependency at the in-memory store and the fake provider."""
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_identity_client] = lambda: identity
    app.dependency_overrides[get_profile_repo] = lambda: profile_repo
    app.dependency_overrides[get_project_service] = lambda: project_service
    app.dependency_overrides[get_account_service] = lambda: account_service
    app.dependency_overrides[get_user_directory_service] = lambda: directory_service
    yield
    app.dependency_overrides.clear()


# ============================================
# Health & Metrics
# ============================================
class TestHealth:
    def test_health_returns_ok(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["version"] == settings.SERVICE_VERSION

    def test_ready_when_store_reachable(self):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    def test_not_ready_when_store_down(self):
        broken = MagicMock()
        broken.connect.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
        app.dependency_overrides[get_engine] = lambda: broken
        response = client.get("/health/ready")
        assert response.status_code == 503

    def test_metrics_exposed(self):
        client.get("/api/v1/users")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "rotation_requests_total" in response.text
        assert "rotation_access_denied_total" in response.text


class TestMiddleware:
    def test_request_id_generated(self):
        response = client.get("/health")
        assert response.headers.get("X-Request-ID")

    def test_request_id_propagated(self):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    @pytest.mark.parametrize("path,expected", [
        ("/api/v1/projects/0b6f/rotations/current", "/api/v1/projects/{param}/rotations/current"),
        ("/api/v1/users/u-1/reset-password", "/api/v1/users/{param}/reset-password"),
        ("/", "/"),
    ])
    def test_normalize_path(self, path, expected):
        assert normalize_path(path) == expected


# ============================================
# Auth resolution
# ============================================
class TestAuthentication:
    def test_missing_token_is_401(self):
        response = client.post("/api/v1/projects", json=_project_body())
        assert response.status_code == 401
        assert response.json()["error_kind"] == "unauthenticated"

    def test_unknown_token_is_401(self):
        response = client.get(
            "/api/v1/account/profile", headers={"Authorization": "Bearer forged"}
        )
        assert response.status_code == 401

    def test_non_bearer_scheme_is_ignored(self, member):
        response = client.get(
            "/api/v1/account/profile",
            headers={"Authorization": f"Basic {member.user.access_token}"},
        )
        assert response.status_code == 401

    def test_non_admin_gets_403(self, member):
        response = client.get("/api/v1/users", headers=_auth(member))
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden - Admin access required"

    def test_identity_outage_is_502_not_401(self, admin, identity):
        identity.fail("get_user", "upstream connect error", status_code=503)
        response = client.get("/api/v1/users", headers=_auth(admin))
        assert response.status_code == 502
        assert response.json()["error_kind"] == "upstream_failure"
        assert response.json()["error"] == "upstream connect error"

    def test_identity_unreachable_is_502(self, admin, identity):
        identity.fail("get_user", "connection refused", status_code=None)
        response = client.get("/api/v1/account/profile", headers=_auth(admin))
        assert response.status_code == 502

    def test_rejected_token_403_from_provider_is_anonymous(self, admin, identity):
        identity.fail("get_user", "bad_jwt", status_code=403)
        response = client.get("/api/v1/users", headers=_auth(admin))
        assert response.status_code == 401

    def test_profile_lookup_failure_is_502_not_403(self, admin, profile_repo):
        with patch.object(
            profile_repo, "get_profile", side_effect=StoreError("select profile: timeout")
        ):
            response = client.get("/api/v1/users", headers=_auth(admin))
        assert response.status_code == 502
        assert response.json()["error"] == "select profile: timeout"


# ============================================
# Projects & rotations
# ============================================
class TestProjectEndpoints:
    def test_create_project_201(self, member):
        response = client.post("/api/v1/projects", json=_project_body(), headers=_auth(member))
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert set(data["data"]) == {"project_id", "rotation_id"}
        assert "error" not in data

    def test_create_project_validation_422(self, member):
        response = client.post(
            "/api/v1/projects",
            json=_project_body(rotationPeriodDays=400, assignees=[]),
            headers=_auth(member),
        )
        assert response.status_code == 422
        paths = {issue["path"] for issue in response.json()["issues"]}
        assert paths == {"rotationPeriodDays", "assignees"}

    def test_get_project_and_current_rotation(self, member):
        created = client.post(
            "/api/v1/projects", json=_project_body(), headers=_auth(member)
        ).json()["data"]

        response = client.get(f"/api/v1/projects/{created['project_id']}", headers=_auth(member))
        assert response.status_code == 200
        assert response.json()["data"]["project"]["start_date"] == "2024-01-01"
        assert response.json()["data"]["rotations"][0]["end_date"] == "2024-01-31"

        response = client.get(
            f"/api/v1/projects/{created['project_id']}/rotations/current",
            params={"on": "2024-02-05"},
            headers=_auth(member),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["window"] == {"index": 1, "start_date": "2024-01-31", "end_date": "2024-03-01"}
        assert data["assignees"] == ["backup", "primary"]

    def test_unknown_project_404(self, member):
        response = client.get("/api/v1/projects/missing", headers=_auth(member))
        assert response.status_code == 404

    def test_update_rotation(self, member):
        created = client.post(
            "/api/v1/projects", json=_project_body(), headers=_auth(member)
        ).json()["data"]
        response = client.patch(
            f"/api/v1/rotations/{created['rotation_id']}",
            json={"assignees": ["night"], "reviewers": ["qa"]},
            headers=_auth(member),
        )
        assert response.status_code == 200
        assert response.json()["data"]["assignees"] == ["night"]

    def test_update_unknown_rotation_404(self, member):
        response = client.patch(
            "/api/v1/rotations/missing",
            json={"assignees": ["night"], "reviewers": ["qa"]},
            headers=_auth(member),
        )
        assert response.status_code == 404


# ============================================
# Account
# ============================================
class TestAccountEndpoints:
    def test_get_profile(self, member):
        response = client.get("/api/v1/account/profile", headers=_auth(member))
        assert response.status_code == 200
        assert response.json()["data"] == {"name": "Milo Member"}

    def test_rename(self, member):
        response = client.patch(
            "/api/v1/account", json={"name": "Milo M."}, headers=_auth(member)
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"updated": ["name"]}

    def test_wrong_current_password_401(self, member):
        response = client.patch(
            "/api/v1/account",
            json={"email": "milo.new@rota.example.com", "currentPassword": "wrong-pass"},
            headers=_auth(member),
        )
        assert response.status_code == 401
        assert response.json()["error_kind"] == "invalid_credentials"

    def test_email_taken_409(self, member, admin):
        response = client.patch(
            "/api/v1/account",
            json={"email": admin.email, "currentPassword": "secret123"},
            headers=_auth(member),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Email already in use"


# ============================================
# User directory
# ============================================
class TestUserEndpoints:
    def test_list_users(self, admin, member):
        response = client.get(
            "/api/v1/users", params={"search": "milo", "pageSize": 5}, headers=_auth(admin)
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 1
        assert data["users"][0]["email"] == "milo@rota.example.com"

    def test_list_users_bad_page_size(self, admin):
        response = client.get("/api/v1/users", params={"pageSize": 500}, headers=_auth(admin))
        assert response.status_code == 422

    def test_get_user(self, admin, member):
        response = client.get(f"/api/v1/users/{member.id}", headers=_auth(admin))
        assert response.status_code == 200
        assert response.json()["data"]["permission"] == "view"

    def test_update_user(self, admin, member):
        response = client.patch(
            f"/api/v1/users/{member.id}",
            json={"name": "Milo Lead", "is_admin": False, "permission": "edit"},
            headers=_auth(admin),
        )
        assert response.status_code == 200
        detail = client.get(f"/api/v1/users/{member.id}", headers=_auth(admin)).json()["data"]
        assert detail["name"] == "Milo Lead"
        assert detail["permission"] == "edit"

    def test_name_only_patch_keeps_admin_flag_and_permission(self, admin, add_user, profile_repo):
        lead = add_user("u-olga", "Olga Lead", "olga@rota.example.com", is_admin=True)
        profile_repo.upsert_permission(lead.id, "edit")

        response = client.patch(
            f"/api/v1/users/{lead.id}", json={"name": "Olga R"}, headers=_auth(admin)
        )

        assert response.status_code == 200
        detail = client.get(f"/api/v1/users/{lead.id}", headers=_auth(admin)).json()["data"]
        assert detail["name"] == "Olga R"
        assert detail["is_admin"] is True
        assert detail["permission"] == "edit"

    def test_patch_malformed_user_id_404(self, admin):
        response = client.patch(
            "/api/v1/users/abc", json={"name": "Nobody"}, headers=_auth(admin)
        )
        assert response.status_code == 404

    def test_reset_password(self, admin, member, identity):
        response = client.post(f"/api/v1/users/{member.id}/reset-password", headers=_auth(admin))
        assert response.status_code == 200
        assert identity.reset_requests[0][0] == "milo@rota.example.com"

    def test_delete_self_409(self, admin):
        response = client.delete(f"/api/v1/users/{admin.id}", headers=_auth(admin))
        assert response.status_code == 409

    def test_delete_user(self, admin, member, identity):
        response = client.delete(f"/api/v1/users/{member.id}", headers=_auth(admin))
        assert response.status_code == 200
        assert identity.deleted == [member.id]


# ============================================
# Logging
# ============================================
class TestJSONLogging:
    def _record(self, **extra):
        record = logging.LogRecord(
            "rotation_service.test", logging.INFO, __file__, 1, "created %s", ("p-1",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_line_is_json_with_context_fields(self):
        line = json.loads(JSONFormatter().format(self._record(user_id="u-1", operation="list")))
        assert line["message"] == "created p-1"
        assert line["service"] == settings.SERVICE_NAME
        assert line["user_id"] == "u-1"
        assert line["operation"] == "list"
        assert "request_id" not in line

    def test_request_id_taken_from_context(self):
        token = request_id_var.set("req-7")
        try:
            line = json.loads(JSONFormatter().format(self._record()))
        finally:
            request_id_var.reset(token)
        assert line["request_id"] == "req-7"
