# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Profiles, permission records and the users-with-emails read.

The directory read goes through a server-side aggregation that joins the
identity provider's email with profile rows; the source expression is
injected so the repository never needs access to the auth schema itself.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from rotation_service.core.database import store_errors
from rotation_service.models.domain import DirectoryUser, Profile

DIRECTORY_COLS = "id, name, email, is_admin"
UPDATABLE_PROFILE_COLS = ("name", "is_admin")


def _row_to_directory_user(row) -> DirectoryUser:
    return DirectoryUser(
        id=str(row["id"]),
        name=row["name"] or "",
        email=row["email"] or None,
        is_admin=bool(row["is_admin"]),
    )


class ProfileRepository:
    def __init__(self, engine: Engine, users_source: str = "get_users_with_emails()"):
        self._engine = engine
        self._users_source = users_source

    # ── Profiles ──

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with store_errors("select profile"), self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT id, name, is_admin FROM profiles WHERE id = :id"),
                {"id": user_id},
            ).mappings().fetchone()
        if not row:
            return None
        return Profile(id=str(row["id"]), name=row["name"] or "", is_admin=bool(row["is_admin"]))

    def update_profile(self, user_id: str, values: Dict[str, Any]) -> bool:
        """Update the given profile columns. Returns False when no row matched."""
        updates = {k: v for k, v in values.items() if k in UPDATABLE_PROFILE_COLS}
        if not updates:
            raise ValueError("no updatable profile columns supplied")
        assignments = ", ".join(f"{col} = :{col}" for col in updates)
        with store_errors("update profile"), self._engine.begin() as conn:
            matched = conn.execute(
                text(f"UPDATE profiles SET {assignments} WHERE id = :id"),
                {**updates, "id": user_id},
            ).rowcount
        return matched > 0

    # ── Directory ──

    def list_users_with_emails(self) -> List[DirectoryUser]:
        with store_errors("read users directory"), self._engine.connect() as conn:
            rows = conn.execute(
                text(f"SELECT {DIRECTORY_COLS} FROM {self._users_source}")
            ).mappings().fetchall()
        return [_row_to_directory_user(r) for r in rows]

    def get_user_with_email(self, user_id: str) -> Optional[DirectoryUser]:
        with store_errors("read users directory"), self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {DIRECTORY_COLS} FROM {self._users_source} WHERE id = :id"),
                {"id": user_id},
            ).mappings().fetchone()
        return _row_to_directory_user(row) if row else None

    # ── Permissions ──

    def get_permission(self, user_id: str) -> Optional[str]:
        with store_errors("select permission"), self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT permission_level FROM user_permissions WHERE user_id = :uid"),
                {"uid": user_id},
            ).fetchone()
        return row[0] if row else None

    def upsert_permission(self, user_id: str, permission_level: str) -> None:
        with store_errors("upsert permission"), self._engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO user_permissions (user_id, permission_level)
                    VALUES (:uid, :level)
                    ON CONFLICT (user_id) DO UPDATE
                    SET permission_level = excluded.permission_level
                """),
                {"uid": user_id, "level": permission_level},
            )
