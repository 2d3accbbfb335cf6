# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Rotation data access.
Role sequences are stored as JSON arrays; dates as ISO calendar dates.
"""
import json
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from rotation_service.core.database import store_errors
from rotation_service.models.domain import Rotation

ROTATION_COLS = "id, project_id, start_date, end_date, assignees, reviewers"


def _roles(value) -> List[str]:
    if isinstance(value, list):
        return value
    return json.loads(value or "[]")


def _row_to_rotation(row) -> Rotation:
    return Rotation(
        id=str(row["id"]),
        project_id=str(row["project_id"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        assignees=_roles(row["assignees"]),
        reviewers=_roles(row["reviewers"]),
    )


class RotationRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──

    def create_rotation(self, values: Dict[str, Any]) -> Rotation:
        rotation_id = str(uuid.uuid4())
        with store_errors("insert rotation"), self._engine.begin() as conn:
            conn.execute(
                text(f"""
                    INSERT INTO rotations ({ROTATION_COLS})
                    VALUES (:id, :project_id, :start_date, :end_date, :assignees, :reviewers)
                """),
                {
                    "id": rotation_id,
                    "project_id": values["project_id"],
                    "start_date": values["start_date"].isoformat(),
                    "end_date": values["end_date"].isoformat(),
                    "assignees": json.dumps(values["assignees"]),
                    "reviewers": json.dumps(values["reviewers"]),
                },
            )
        return Rotation(id=rotation_id, **values)

    def update_roles(self, rotation_id: str, assignees: List[str],
                     reviewers: List[str]) -> Optional[Rotation]:
        """Replace both role sequences. Returns None when no row matched."""
        with store_errors("update rotation"), self._engine.begin() as conn:
            matched = conn.execute(
                text("""
                    UPDATE rotations SET assignees = :assignees, reviewers = :reviewers
                    WHERE id = :id
                """),
                {"id": rotation_id, "assignees": json.dumps(assignees),
                 "reviewers": json.dumps(reviewers)},
            ).rowcount
            if not matched:
                return None
            row = conn.execute(
                text(f"SELECT {ROTATION_COLS} FROM rotations WHERE id = :id"),
                {"id": rotation_id},
            ).mappings().fetchone()
        return _row_to_rotation(row)

    def delete_for_project(self, project_id: str) -> int:
        with store_errors("delete rotations"), self._engine.begin() as conn:
            return conn.execute(
                text("DELETE FROM rotations WHERE project_id = :pid"), {"pid": project_id}
            ).rowcount

    # ── Read ──

    def list_for_project(self, project_id: str) -> List[Rotation]:
        with store_errors("select rotations"), self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {ROTATION_COLS} FROM rotations
                    WHERE project_id = :pid ORDER BY start_date
                """),
                {"pid": project_id},
            ).mappings().fetchall()
        return [_row_to_rotation(r) for r in rows]
