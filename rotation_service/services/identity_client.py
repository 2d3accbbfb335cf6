# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Identity provider client — GoTrue-style auth API over HTTP.
Every failure (transport or non-2xx) is raised as IdentityError carrying the
provider's own message; callers decide how to surface it.
"""

from typing import Any, Optional

import httpx

from rotation_service.core.errors import IdentityError
from rotation_service.core.logging import get_logger
from rotation_service.metrics.prometheus import UPSTREAM_ERRORS
from rotation_service.models.domain import AuthUser

logger = get_logger(__name__)

_MESSAGE_KEYS = ("msg", "message", "error_description", "error")


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in _MESSAGE_KEYS:
            if body.get(key):
                return str(body[key])
    return resp.text or f"HTTP {resp.status_code}"


class IdentityClient:
    """Thin wrapper over the provider's /auth/v1 endpoints."""

    def __init__(
        self,
        http_client: httpx.Client,
        base_url: str,
        anon_key: str,
        service_key: str = "",
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._service_key = service_key

    # ── Transport ──

    def _headers(self, bearer: Optional[str], admin: bool = False) -> dict[str, str]:
        key = self._service_key if admin else self._anon_key
        return {"apikey": key, "Authorization": f"Bearer {bearer or key}"}

    def _request(
        self,
        method: str,
        path: str,
        bearer: Optional[str] = None,
        admin: bool = False,
        **kwargs: Any,
    ) -> Any:
        url = f"{self._base_url}/auth/v1{path}"
        try:
            resp = self._client.request(
                method, url, headers=self._headers(bearer, admin), **kwargs
            )
        except httpx.HTTPError as exc:
            UPSTREAM_ERRORS.labels(target="identity").inc()
            logger.warning("Identity provider unreachable: %s %s: %s", method, path, exc)
            raise IdentityError(str(exc) or exc.__class__.__name__) from exc

        if resp.status_code >= 400:
            UPSTREAM_ERRORS.labels(target="identity").inc()
            message = _error_message(resp)
            logger.info(
                "Identity provider rejected %s %s: status=%d, message=%s",
                method, path, resp.status_code, message,
            )
            raise IdentityError(message, status_code=resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    # ── Session ──

    def get_user(self, access_token: str) -> AuthUser:
        """Resolve a bearer token to the identity it belongs to."""
        body = self._request("GET", "/user", bearer=access_token)
        if not isinstance(body, dict) or not body.get("id"):
            raise IdentityError("Identity provider returned no user")
        return AuthUser(id=str(body["id"]), email=body.get("email"), access_token=access_token)

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        ) or {}

    # ── Self-service ──

    def update_user(
        self,
        access_token: str,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> dict[str, Any]:
        attributes: dict[str, str] = {}
        if email is not None:
            attributes["email"] = email
        if password is not None:
            attributes["password"] = password
        return self._request("PUT", "/user", bearer=access_token, json=attributes) or {}

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._request("POST", "/recover", params=params, json={"email": email})

    # ── Admin ──

    def admin_delete_user(self, user_id: str) -> None:
        if not self._service_key:
            raise IdentityError("Service role key is not configured")
        self._request("DELETE", f"/admin/users/{user_id}", admin=True)
