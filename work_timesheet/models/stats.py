"""
Dataclasses for the hour totals shown in the statistics view.
"""

import datetime as dt
from dataclasses import dataclass, field

from .timesheet import Project


@dataclass
class ProjectTotal:
    """Hours booked against a single project within a period."""

    project: Project
    hours: float = 0.0


@dataclass
class PeriodStats:
    """Tracks hour totals for a statistics period ('week', 'month', 'year', 'all')."""

    period: str
    start: dt.date | None
    per_project: list[ProjectTotal] = field(default_factory=list)
    total_hours: float = 0.0
    entry_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0
