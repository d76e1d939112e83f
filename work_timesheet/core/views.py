"""
The interface the persistence manager uses to refresh whatever is showing
the timesheet (calendar, statistics, notifications).
"""

import datetime as dt
from typing import Literal, Protocol

from work_timesheet.models.timesheet import Entry, Project

NotificationLevel = Literal["info", "success", "warning", "error"]


class TimesheetView(Protocol):
    """Collaborator surface called by `PersistenceManager` after every mutation."""

    def render_calendar(self, projects: list[Project], entries: list[Entry]) -> None:
        ...

    def render_stats(self, projects: list[Project], entries: list[Entry]) -> None:
        ...

    def notify(self, message: str, level: NotificationLevel = "info") -> None:
        ...

    def show_last_saved(self, when: dt.datetime) -> None:
        ...
