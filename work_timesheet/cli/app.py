"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import datetime as dt
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from work_timesheet import __version__
from work_timesheet.core.stats import resolve_project
from work_timesheet.gateway.server import run_gateway
from work_timesheet.models.config import AppConfig
from work_timesheet.storage.config_manager import ConfigManager
from work_timesheet.utils.dates import STATS_PERIODS, parse_month, shift_month
from work_timesheet.utils.formatting import format_hours, format_size
from work_timesheet.utils.structured_logger import create_structured_logger

from .formatters import build_day_table, build_projects_table, print_config
from .session import TimesheetSession
from .views import ConsoleView

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("work_timesheet")

app = typer.Typer(
    name="timesheet",
    help=(
        "Track work hours per project on a monthly calendar. Use 'timesheet"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)
project_app = typer.Typer(help="Manage projects.", add_completion=False)
app.add_typer(project_app, name="project")


def _base_dir(env_var: str, fallback: str) -> Path:
    if os.name == "nt":
        return Path(os.getenv("APPDATA", "~\\AppData\\Roaming")).expanduser()
    return Path(os.getenv(env_var, fallback)).expanduser()


def get_config_dir() -> Path:
    return _base_dir("XDG_CONFIG_HOME", "~/.config") / "work-timesheet"


def get_data_dir() -> Path:
    return _base_dir("XDG_DATA_HOME", "~/.local/share") / "work-timesheet"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _config_manager() -> ConfigManager:
    return ConfigManager(CONFIG_FILE, get_data_dir())


def _load_config(cli_options: dict | None = None) -> AppConfig:
    return _config_manager().load_config(cli_options)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Treat this session as offline; new entries are marked unsynced.",
    ),
):
    """Work Timesheet CLI"""
    if version:
        console.print(f"[bold]work-timesheet[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("work_timesheet").setLevel(log_level)

    ctx.obj = {"online": not offline}

    if show_config:
        config = _load_config()
        config_data = config.model_dump(exclude={"config_path"})
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _is_online(ctx: typer.Context) -> bool:
    return (ctx.obj or {}).get("online", True)


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
    data_dir: Path | None = typer.Option(
        None, "--data-dir", help="Where to keep timesheet data and caches."
    ),
    upstream: str | None = typer.Option(
        None, "--upstream", help="Origin serving the timesheet web assets."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings: dict = {}
    if data_dir:
        settings["data_dir"] = str(data_dir.expanduser())
    if upstream:
        settings["upstream_url"] = upstream
    _config_manager().save_new_config(settings)
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Book some hours with: [cyan]timesheet add <DATE> <PROJECT> <HOURS>[/cyan]")


@app.command()
def add(
    ctx: typer.Context,
    date: dt.datetime = typer.Argument(  # noqa: B008
        ..., formats=["%Y-%m-%d"], help="Day to book, as YYYY-MM-DD."
    ),
    project: str = typer.Argument(..., help="Project id or name."),
    hours: float = typer.Argument(..., min=0.0, max=24.0, help="Hours worked."),
):
    """Book hours against a project on a day."""
    config = _load_config()
    day = date.date()
    view = ConsoleView(console, year=day.year, month=day.month)

    async def _add_async():
        async with TimesheetSession(config, view, online=_is_online(ctx)) as manager:
            target = resolve_project(manager.projects, project)
            entry_id = manager.add_entry(day, target.id, hours)
            view.notify(
                f"Booked {format_hours(hours)} on {target.name} for {day} "
                f"(id {entry_id}).",
                "success",
            )

    asyncio.run(_add_async())


@app.command()
def delete(
    ctx: typer.Context,
    entry_id: str = typer.Argument(..., help="Id of the entry, see `timesheet day`."),
):
    """Delete a time entry."""
    config = _load_config()
    view = ConsoleView(console, show_calendar=False)

    async def _delete_async():
        async with TimesheetSession(config, view, online=_is_online(ctx)) as manager:
            if manager.delete_entry(entry_id):
                view.notify(f"Deleted entry {entry_id}.", "success")
            else:
                view.notify(f"No entry with id {entry_id}.", "warning")

    asyncio.run(_delete_async())


@app.command()
def calendar(
    month: str | None = typer.Option(
        None, "--month", "-m", help="Month to show, as YYYY-MM (default: current)."
    ),
    offset: int = typer.Option(
        0, "--offset", help="Shift the month shown by this many months."
    ),
):
    """Show a month calendar with the hours booked each day."""
    config = _load_config()
    today = dt.date.today()
    try:
        year, month_no = parse_month(month) if month else (today.year, today.month)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--month") from e
    year, month_no = shift_month(year, month_no, offset)
    view = ConsoleView(console, year=year, month=month_no)

    async def _calendar_async():
        async with TimesheetSession(config, view) as manager:
            view.render_calendar(manager.projects, manager.entries)

    asyncio.run(_calendar_async())


@app.command()
def day(
    date: dt.datetime = typer.Argument(  # noqa: B008
        ..., formats=["%Y-%m-%d"], help="Day to show, as YYYY-MM-DD."
    ),
):
    """List the entries of a single day with their ids."""
    config = _load_config()
    view = ConsoleView(console)

    async def _day_async():
        async with TimesheetSession(config, view) as manager:
            console.print(build_day_table(date.date(), manager.projects, manager.entries))

    asyncio.run(_day_async())


@app.command()
def stats(
    period: str = typer.Option(
        "month",
        "--period",
        "-p",
        help=f"Statistics period: {', '.join(STATS_PERIODS)}.",
    ),
):
    """Show hours per project for a period."""
    if period not in STATS_PERIODS:
        raise typer.BadParameter(
            f"Choose one of: {', '.join(STATS_PERIODS)}.", param_hint="--period"
        )
    config = _load_config()
    view = ConsoleView(console, period=period)

    async def _stats_async():
        async with TimesheetSession(config, view) as manager:
            view.render_stats(manager.projects, manager.entries)

    asyncio.run(_stats_async())


@app.command()
def save(ctx: typer.Context):
    """Force a save of the current data to both storage copies."""
    config = _load_config()
    view = ConsoleView(console, show_calendar=False, show_stats=False)

    async def _save_async():
        async with TimesheetSession(config, view, online=_is_online(ctx)) as manager:
            manager.force_save()
        used = manager.store.usage_bytes()
        quota = f" of {format_size(config.quota_kb * 1024)}" if config.quota_kb else ""
        console.print(f"[dim]Storage used: {format_size(used)}{quota}[/dim]")

    asyncio.run(_save_async())


@app.command()
def sync():
    """Run the (placeholder) synchronization that happens when going online."""
    config = _load_config()
    view = ConsoleView(console, show_calendar=False, show_stats=False)

    async def _sync_async():
        async with TimesheetSession(config, view, online=False) as manager:
            manager.set_online(True)

    asyncio.run(_sync_async())


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Interface to listen on."),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on."),
    upstream: str | None = typer.Option(
        None, "--upstream", help="Origin serving the timesheet web assets."
    ),
):
    """Run the offline cache gateway in front of the upstream web server."""
    cli_options = {
        key: value
        for key, value in {
            "gateway_host": host,
            "gateway_port": port,
            "upstream_url": upstream,
        }.items()
        if value is not None
    }
    config = _load_config(cli_options)
    if logging.getLogger("work_timesheet").level > logging.INFO:
        logging.getLogger("work_timesheet").setLevel(logging.INFO)

    log_dir = Path(config.data_dir) / "logs" if config.json_logs else None
    base, _, gateway_log = create_structured_logger(
        log_dir=log_dir, enable_json=config.json_logs
    )
    with base:
        run_gateway(config, gateway_logger=gateway_log)


@project_app.command("add")
def project_add(
    name: str = typer.Argument(..., help="Project name."),
    color: str = typer.Option("#3b82f6", "--color", "-c", help="Hex colour."),
):
    """Create a project."""
    config = _load_config()
    view = ConsoleView(console, show_calendar=False, show_stats=False)

    async def _project_add_async():
        async with TimesheetSession(config, view) as manager:
            project = manager.add_project(name, color)
            view.notify(f"Created project '{project.name}' (id {project.id}).", "success")

    asyncio.run(_project_add_async())


@project_app.command("list")
def project_list():
    """List projects."""
    config = _load_config()
    view = ConsoleView(console)

    async def _project_list_async():
        async with TimesheetSession(config, view) as manager:
            console.print(build_projects_table(manager.projects))

    asyncio.run(_project_list_async())
