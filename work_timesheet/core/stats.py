"""
Pure computations behind the calendar and statistics views.
"""

import datetime as dt
from collections.abc import Iterable

from work_timesheet.exceptions import UnknownProjectError
from work_timesheet.models.stats import PeriodStats, ProjectTotal
from work_timesheet.models.timesheet import Entry, Project, ProjectId
from work_timesheet.utils.dates import period_start


def find_project(
    projects: Iterable[Project], project_id: ProjectId | None
) -> Project | None:
    """Looks a project up by id. Returns None for dangling references."""
    for project in projects:
        if project.id == project_id:
            return project
    return None


def entries_for_day(entries: Iterable[Entry], day: dt.date) -> list[Entry]:
    return [entry for entry in entries if entry.date == day]


def compute_stats(
    projects: list[Project],
    entries: list[Entry],
    period: str,
    today: dt.date | None = None,
) -> PeriodStats:
    """
    Totals hours per project for a period.

    Entries whose project no longer exists count towards the overall total
    but get no per-project row.
    """
    today = today or dt.date.today()
    start = period_start(period, today)
    in_period = [e for e in entries if start is None or e.date >= start]

    totals: dict[ProjectId, float] = {}
    for entry in in_period:
        totals[entry.project_id] = totals.get(entry.project_id, 0.0) + entry.hours

    per_project = []
    for project_id, hours in totals.items():
        project = find_project(projects, project_id)
        if project is not None:
            per_project.append(ProjectTotal(project=project, hours=hours))

    return PeriodStats(
        period=period,
        start=start,
        per_project=per_project,
        total_hours=sum(e.hours for e in in_period),
        entry_count=len(in_period),
    )


def resolve_project(projects: Iterable[Project], ref: str) -> Project:
    """
    Finds a project by id or, failing that, by case-insensitive name.

    Raises:
        UnknownProjectError: If nothing matches.
    """
    projects = list(projects)
    ref = ref.strip()
    by_id = find_project(projects, int(ref) if ref.isdigit() else ref)
    if by_id is not None:
        return by_id
    for project in projects:
        if project.name.lower() == ref.lower():
            return project
    raise UnknownProjectError(f"No project with id or name '{ref}'.")
