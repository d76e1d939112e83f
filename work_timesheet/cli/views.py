"""
Rich console implementation of the timesheet view.
"""

import datetime as dt

from rich.console import Console

from work_timesheet.core.stats import compute_stats
from work_timesheet.core.views import NotificationLevel
from work_timesheet.models.timesheet import Entry, Project
from work_timesheet.utils.formatting import format_saved_time

from .formatters import build_calendar_table, build_stats_panel

_LEVEL_STYLES = {
    "info": ("cyan", "ℹ"),
    "success": ("green", "✓"),
    "warning": ("yellow", "⚠️ "),
    "error": ("bold red", "✗"),
}


class ConsoleView:
    """
    Prints the month calendar, statistics and notifications to a console.

    The month shown and the statistics period are view state, like the
    month picker and period selector of a calendar UI.
    """

    def __init__(
        self,
        console: Console,
        year: int | None = None,
        month: int | None = None,
        period: str = "month",
        show_calendar: bool = True,
        show_stats: bool = True,
    ):
        today = dt.date.today()
        self.console = console
        self.year = year or today.year
        self.month = month or today.month
        self.period = period
        self.show_calendar = show_calendar
        self.show_stats = show_stats

    def render_calendar(self, projects: list[Project], entries: list[Entry]) -> None:
        if self.show_calendar:
            self.console.print(
                build_calendar_table(self.year, self.month, projects, entries)
            )

    def render_stats(self, projects: list[Project], entries: list[Entry]) -> None:
        if self.show_stats:
            self.console.print(
                build_stats_panel(compute_stats(projects, entries, self.period))
            )

    def notify(self, message: str, level: NotificationLevel = "info") -> None:
        style, icon = _LEVEL_STYLES.get(level, _LEVEL_STYLES["info"])
        self.console.print(f"[{style}]{icon} {message}[/{style}]")

    def show_last_saved(self, when: dt.datetime) -> None:
        self.console.print(f"[dim]{format_saved_time(when)}[/dim]")
