# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Project lifecycle — creation with first-rotation seeding,
rotation role updates, and rotation window lookups.

The store gives no multi-statement transaction across repositories, so a
failed creation is compensated by explicitly deleting what was written.
"""

from datetime import date
from typing import Any, Optional

from rotation_service.core.errors import ErrorKind, OperationResult, UpstreamError
from rotation_service.core.ids import parse_id
from rotation_service.core.logging import get_logger
from rotation_service.metrics.prometheus import (
    PROJECTS_CREATED,
    PROJECT_ROLLBACKS,
    ROTATION_UPDATES,
)
from rotation_service.models.domain import ActingUser
from rotation_service.repositories.project_repository import ProjectRepository
from rotation_service.repositories.rotation_repository import RotationRepository
from rotation_service.schemas.validation import (
    ProjectCreate,
    validate_project_create,
    validate_rotation_update,
)
from rotation_service.services.access_gate import require_user
from rotation_service.services.rotation import (
    build_first_rotation,
    rotate_roles,
    window_for_date,
)

logger = get_logger(__name__)

CREATOR_ROLE = "admin"


class ProjectService:
    """Business logic for projects and their rotations."""

    def __init__(
        self,
        project_repo: ProjectRepository,
        rotation_repo: RotationRepository,
    ) -> None:
        self._projects = project_repo
        self._rotations = rotation_repo

    # ── Commands ──

    def create_project(self, payload: Any, actor: Optional[ActingUser]) -> OperationResult:
        """Create a project, its first rotation and the creator's membership."""
        denied = require_user(actor)
        if denied is not None:
            return denied

        if isinstance(payload, ProjectCreate):
            data = payload
        else:
            data, issues = validate_project_create(payload)
            if issues:
                return OperationResult.invalid(issues)

        try:
            project = self._projects.create_project(
                name=data.name,
                description=data.description,
                rotation_period_days=data.rotation_period_days,
                start_date=data.start_date,
                created_by=actor.id,
            )
        except UpstreamError as exc:
            logger.warning("Project insert failed: user=%s, error=%s", actor.id, exc.message)
            return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)

        try:
            rotation = self._rotations.create_rotation(build_first_rotation(project.id, data))
            self._projects.add_member(project.id, actor.id, CREATOR_ROLE)
        except UpstreamError as exc:
            logger.warning(
                "Project seeding failed, rolling back: project=%s, error=%s",
                project.id, exc.message,
            )
            rollback_error = self._rollback(project.id)
            return OperationResult.fail(
                ErrorKind.UPSTREAM_FAILURE, exc.message, rollback_error=rollback_error
            )

        PROJECTS_CREATED.inc()
        logger.info(
            "Project created: period_days=%d, window=%s..%s",
            project.rotation_period_days,
            rotation.start_date.isoformat(), rotation.end_date.isoformat(),
            extra={"project_id": project.id, "user_id": actor.id},
        )
        return OperationResult.ok({"project_id": project.id, "rotation_id": rotation.id})

    def update_rotation(
        self,
        rotation_id: str,
        assignees: Any,
        reviewers: Any,
        actor: Optional[ActingUser],
    ) -> OperationResult:
        """Replace both role sequences of a rotation; dates are left alone."""
        denied = require_user(actor)
        if denied is not None:
            return denied

        roles, issues = validate_rotation_update(
            {"assignees": assignees, "reviewers": reviewers}
        )
        if issues:
            return OperationResult.invalid(issues)

        target = parse_id(rotation_id)
        rotation = None
        if target is not None:
            try:
                rotation = self._rotations.update_roles(target, roles.assignees, roles.reviewers)
            except UpstreamError as exc:
                logger.warning("Rotation update failed: id=%s, error=%s", rotation_id, exc.message)
                return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)

        if rotation is None:
            return OperationResult.fail(
                ErrorKind.NOT_FOUND, f"No rotation found with id '{rotation_id}'"
            )

        ROTATION_UPDATES.inc()
        logger.info(
            "Rotation updated: id=%s, assignees=%d, reviewers=%d",
            rotation_id, len(rotation.assignees), len(rotation.reviewers),
        )
        return OperationResult.ok(rotation)

    # ── Queries ──

    def get_project(self, project_id: str, actor: Optional[ActingUser]) -> OperationResult:
        denied = require_user(actor)
        if denied is not None:
            return denied
        target = parse_id(project_id)
        try:
            project = self._projects.get_project(target) if target else None
            if project is None:
                return OperationResult.fail(
                    ErrorKind.NOT_FOUND, f"No project found with id '{project_id}'"
                )
            rotations = self._rotations.list_for_project(target)
        except UpstreamError as exc:
            return OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message)
        return OperationResult.ok({"project": project, "rotations": rotations})

    def get_current_rotation(
        self,
        project_id: str,
        actor: Optional[ActingUser],
        on_date: Optional[date] = None,
    ) -> OperationResult:
        """
        Resolve the window containing ``on_date`` and who holds which role in it.
        Roles come from the latest stored rotation at or before that window,
        shifted by the number of windows elapsed since it started.
        """
        found = self.get_project(project_id, actor)
        if not found.success:
            return found
        project = found.data["project"]
        rotations = found.data["rotations"]
        if not rotations:
            return OperationResult.fail(
                ErrorKind.NOT_FOUND, f"Project '{project_id}' has no rotations"
            )

        period = project.rotation_period_days
        window = window_for_date(project.start_date, period, on_date)
        base = rotations[0]
        for rotation in rotations:
            if rotation.start_date <= window.start:
                base = rotation
        base_index = max((base.start_date - project.start_date).days // period, 0)
        shift = max(window.index - base_index, 0)

        return OperationResult.ok({
            "project_id": project.id,
            "rotation_id": base.id,
            "window": {
                "index": window.index,
                "start_date": window.start,
                "end_date": window.end,
            },
            "assignees": rotate_roles(base.assignees, shift),
            "reviewers": rotate_roles(base.reviewers, shift),
        })

    # ── Internal ──

    def _rollback(self, project_id: str) -> Optional[str]:
        """Best-effort delete of a half-created project. Returns the failure, if any."""
        errors: list[str] = []
        try:
            self._rotations.delete_for_project(project_id)
        except UpstreamError as exc:
            errors.append(exc.message)
        try:
            self._projects.delete_project(project_id)
        except UpstreamError as exc:
            errors.append(exc.message)

        if errors:
            PROJECT_ROLLBACKS.labels(outcome="failed").inc()
            logger.error("Rollback incomplete: project=%s, errors=%s", project_id, errors)
            return "; ".join(errors)
        PROJECT_ROLLBACKS.labels(outcome="ok").inc()
        logger.info("Rollback complete: project=%s", project_id)
        return None
