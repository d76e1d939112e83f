"""
Functions for formatting and displaying data in the console using Rich.
"""

import calendar
import datetime as dt
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from work_timesheet.core.stats import entries_for_day, find_project
from work_timesheet.models.stats import PeriodStats
from work_timesheet.models.timesheet import Entry, Project
from work_timesheet.utils.dates import month_grid
from work_timesheet.utils.formatting import format_hours

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

PERIOD_TITLES = {
    "week": "Last 7 days",
    "month": "This month",
    "year": "This year",
    "all": "All time",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `timesheet --show-config` to see what was loaded.",
            "• Run `timesheet init --force` to write a fresh default file.",
        ],
        "UnknownProjectError": [
            "• Run `timesheet project list` to see project names and ids.",
            "• Create the project first with `timesheet project add <NAME>`.",
        ],
        "StorageQuotaExceededError": [
            "• The data directory has reached its configured quota.",
            "• Raise `quota_kb` in the configuration file.",
        ],
        "StorageUnavailableError": [
            "• Check that the data directory exists and is writable.",
            "• Check free disk space.",
        ],
        "NetworkError": [
            "• The upstream web server could not be reached.",
            "• Check `upstream_url` in the configuration file.",
        ],
        "GatewayInstallError": [
            "• Every precached asset must be served with status 200.",
            "• Check the `precache` list and that the upstream is running.",
        ],
        "ValidationError": [
            "• Dates must look like YYYY-MM-DD and hours must be a number.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if isinstance(value, list):
            value = ", ".join(map(str, value))
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def _day_cell(day: dt.date, projects: list[Project], entries: list[Entry]) -> Text:
    cell = Text(str(day.day), style="bold")
    for entry in entries_for_day(entries, day):
        project = find_project(projects, entry.project_id)
        if project is None:
            continue
        cell.append("\n")
        cell.append(f"{project.name}: {format_hours(entry.hours)}", style=project.color)
    return cell


def build_calendar_table(
    year: int, month: int, projects: list[Project], entries: list[Entry]
) -> Table:
    """Builds a Monday-first month grid with each day's booked hours."""
    table = Table(
        title=f"[bold]{calendar.month_name[month]} {year}[/bold]",
        box=box.SIMPLE_HEAD,
        show_lines=True,
        expand=True,
    )
    for weekday in WEEKDAYS:
        table.add_column(weekday, justify="left", vertical="top", ratio=1)

    for week in month_grid(year, month):
        table.add_row(
            *(
                _day_cell(day, projects, entries) if day else Text("")
                for day in week
            )
        )
    return table


def build_day_table(
    day: dt.date, projects: list[Project], entries: list[Entry]
) -> Table:
    """Lists a single day's entries with their ids, for use with `delete`."""
    table = Table(
        title=f"[bold]{day.strftime('%A, %d %B %Y')}[/bold]",
        box=box.ROUNDED,
        header_style="bold cyan",
    )
    table.add_column("Id", style="dim")
    table.add_column("Project")
    table.add_column("Hours", justify="right")
    table.add_column("Synced", justify="center")

    for entry in entries_for_day(entries, day):
        project = find_project(projects, entry.project_id)
        name = (
            Text(project.name, style=project.color)
            if project
            else Text(
                f"<missing project {entry.project_id}>"
                if entry.project_id is not None
                else "<no project>",
                style="dim",
            )
        )
        table.add_row(
            entry.id or "",
            name,
            format_hours(entry.hours),
            "[green]✓[/green]" if entry.synced else "[yellow]–[/yellow]",
        )
    return table


def build_stats_panel(stats: PeriodStats) -> Panel:
    """Per-project hour totals for a period, followed by the overall total."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column()
    table.add_column(justify="right")

    for row in sorted(stats.per_project, key=lambda r: r.hours, reverse=True):
        name = Text("■ ", style=row.project.color)
        name.append(row.project.name)
        table.add_row(name, format_hours(row.hours))

    if stats.is_empty:
        table.add_row("[dim]No hours booked in this period.[/dim]", "")
    table.add_row("[bold]Total[/bold]", f"[bold]{format_hours(stats.total_hours)}[/bold]")

    return Panel(
        table,
        title=f"[bold]Statistics[/bold] ([dim]{PERIOD_TITLES.get(stats.period, stats.period)}[/dim])",
        border_style="cyan",
        expand=False,
    )


def build_projects_table(projects: list[Project]) -> Table:
    table = Table(box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Id", style="dim")
    table.add_column("Name")
    table.add_column("Colour")
    for project in projects:
        table.add_row(
            str(project.id),
            Text(project.name, style=f"bold {project.color}"),
            project.color,
        )
    return table
