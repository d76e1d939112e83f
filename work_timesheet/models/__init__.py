"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as configuration, timesheet data and
statistics.
"""

from .config import AppConfig
from .stats import PeriodStats, ProjectTotal
from .timesheet import Entry, Project, Snapshot, default_projects

__all__ = [
    "AppConfig",
    "Entry",
    "PeriodStats",
    "Project",
    "ProjectTotal",
    "Snapshot",
    "default_projects",
]
