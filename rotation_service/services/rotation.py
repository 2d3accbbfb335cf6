# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation logic — pure computation, no side effects.

A rotation window is the half-open interval [start, end) of
``period_days`` days. Window 0 starts on the project's start date.
"""

from datetime import date, timedelta
from typing import Any, NamedTuple, Optional, Sequence, Union

from rotation_service.schemas.validation import ProjectCreate

MIN_PERIOD_DAYS = 1
MAX_PERIOD_DAYS = 365

DateLike = Union[date, str]


class RotationWindow(NamedTuple):
    index: int
    start: date
    end: date


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _check_period(period_days: int) -> None:
    if isinstance(period_days, bool) or not isinstance(period_days, int):
        raise ValueError(f"rotation period must be an integer, got {period_days!r}")
    if not MIN_PERIOD_DAYS <= period_days <= MAX_PERIOD_DAYS:
        raise ValueError(
            f"rotation period must be between {MIN_PERIOD_DAYS} and "
            f"{MAX_PERIOD_DAYS} days, got {period_days}"
        )


def compute_window(start_date: DateLike, period_days: int) -> tuple[date, date]:
    """Return (start, end) of the window beginning at ``start_date``."""
    _check_period(period_days)
    start = _as_date(start_date)
    return start, start + timedelta(days=period_days)


def window_for_date(
    start_date: DateLike,
    period_days: int,
    on_date: Optional[date] = None,
) -> RotationWindow:
    """
    Return the window containing ``on_date`` (today by default).
    Dates before the first window resolve to window 0.
    """
    _check_period(period_days)
    start = _as_date(start_date)
    day = on_date or date.today()

    index = max((day - start).days // period_days, 0)
    window_start = start + timedelta(days=index * period_days)
    return RotationWindow(index, window_start, window_start + timedelta(days=period_days))


def rotate_roles(roles: Sequence[str], index: int) -> list[str]:
    """Shift an ordered role sequence by ``index`` positions."""
    if not roles:
        return []
    offset = index % len(roles)
    return list(roles[offset:]) + list(roles[:offset])


def build_first_rotation(project_id: str, payload: ProjectCreate) -> dict[str, Any]:
    """Row values for a project's first rotation."""
    start, end = compute_window(payload.start_date, payload.rotation_period_days)
    return {
        "project_id": project_id,
        "start_date": start,
        "end_date": end,
        "assignees": list(payload.assignees),
        "reviewers": list(payload.reviewers),
    }
