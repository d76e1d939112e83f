"""
Helper functions for formatting data into human-readable strings.
"""

import datetime as dt


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 KB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_hours(hours: float) -> str:
    """Formats an hour count without a trailing '.0' (e.g., '7.5h', '8h')."""
    rounded = round(hours, 2)
    if rounded == int(rounded):
        return f"{int(rounded)}h"
    return f"{rounded:g}h"


def format_saved_time(when: dt.datetime) -> str:
    """Formats the 'last saved' indicator shown after a save."""
    return f"Saved: {when.astimezone().strftime('%H:%M:%S')}"
