"""
work-timesheet: a local work-hours timesheet with redundant durable storage
and an offline-first asset cache gateway.
"""

__version__ = "1.2.0"
