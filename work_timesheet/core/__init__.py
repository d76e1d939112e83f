"""
Core timesheet engine.

`PersistenceManager` owns the in-memory projects and entries and keeps them
in durable storage; `stats` holds the pure computations behind the views.
"""

from .persistence import PersistenceManager
from .scheduler import ScheduledTask

__all__ = ["PersistenceManager", "ScheduledTask"]
