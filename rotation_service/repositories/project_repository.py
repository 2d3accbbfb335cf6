# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Project and project-member data access.
Each call runs in its own transaction. NO business rules here — pure CRUD.
"""
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from rotation_service.core.database import store_errors
from rotation_service.models.domain import Project, ProjectMember, ProjectState

PROJECT_COLS = "id, name, description, rotation_period_days, start_date, created_by, state"


def _row_to_project(row) -> Project:
    values = dict(row)
    values["id"] = str(values["id"])
    values["created_by"] = str(values["created_by"])
    return Project.model_validate(values)


class ProjectRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──

    def create_project(self, name: str, description: Optional[str],
                       rotation_period_days: int, start_date, created_by: str) -> Project:
        record: Dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "name": name,
            "description": description,
            "rotation_period_days": rotation_period_days,
            "start_date": start_date.isoformat(),
            "created_by": created_by,
            "state": ProjectState.ACTIVE.value,
        }
        with store_errors("insert project"), self._engine.begin() as conn:
            conn.execute(
                text(f"""
                    INSERT INTO projects ({PROJECT_COLS})
                    VALUES (:id, :name, :description, :rotation_period_days,
                            :start_date, :created_by, :state)
                """),
                record,
            )
        return Project.model_validate(record)

    def delete_project(self, project_id: str) -> bool:
        with store_errors("delete project"), self._engine.begin() as conn:
            deleted = conn.execute(
                text("DELETE FROM projects WHERE id = :id"), {"id": project_id}
            ).rowcount
        return deleted > 0

    def add_member(self, project_id: str, user_id: str, role: str) -> ProjectMember:
        with store_errors("insert project member"), self._engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO project_members (project_id, user_id, role)
                    VALUES (:project_id, :user_id, :role)
                """),
                {"project_id": project_id, "user_id": user_id, "role": role},
            )
        return ProjectMember(project_id=project_id, user_id=user_id, role=role)

    # ── Read ──

    def get_project(self, project_id: str) -> Optional[Project]:
        with store_errors("select project"), self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {PROJECT_COLS} FROM projects WHERE id = :id"),
                {"id": project_id},
            ).mappings().fetchone()
        return _row_to_project(row) if row else None
