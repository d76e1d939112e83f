"""
Pydantic models for the timesheet data: projects, time entries and the
snapshot that is written to durable storage.

Models serialise with camelCase keys (``projectId``, ``createdAt``,
``lastSaved``) so snapshots stay readable by older versions of the app.
"""

import datetime as dt
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_HEX_COLOR_REGEX = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")

ProjectId = int | str


def _coerce_project_id(value: Any) -> Any:
    """Turns numeric id strings (as typed on the command line) into integers."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Project(_SnapshotModel):
    """A project that hours can be booked against."""

    id: ProjectId
    name: str
    color: str = "#3b82f6"

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> Any:
        return _coerce_project_id(v)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Ensures the colour is a CSS hex colour such as '#10b981'."""
        if not _HEX_COLOR_REGEX.match(v):
            raise ValueError(f"Project colour must be a hex colour, got '{v}'.")
        return v.lower()


class Entry(_SnapshotModel):
    """
    A number of hours booked against a project on a calendar day.

    ``id`` is optional only because snapshots written by early versions
    lacked it; the persistence manager's migration pass fills it in.
    ``project_id`` may be null or point at a deleted project; such entries
    are kept and shown as dangling.
    """

    id: str | None = None
    date: dt.date
    project_id: ProjectId | None = None
    hours: float
    created_at: str | None = None
    synced: bool = False

    @field_validator("project_id", mode="before")
    @classmethod
    def normalize_project_id(cls, v: Any) -> Any:
        return _coerce_project_id(v)


class Snapshot(_SnapshotModel):
    """The ``{projects, entries, lastSaved}`` triple kept in storage."""

    projects: list[Project] = Field(default_factory=list)
    entries: list[Entry] = Field(default_factory=list)
    last_saved: str | None = None

    @field_validator("projects", "entries", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_json(self) -> str:
        """Serialises the snapshot in its stored (camelCase) form."""
        return self.model_dump_json(by_alias=True)


def default_projects() -> list[Project]:
    """The projects seeded on first run."""
    return [
        Project(id=1, name="Development", color="#3b82f6"),
        Project(id=2, name="Testing", color="#ef4444"),
        Project(id=3, name="Design", color="#10b981"),
        Project(id=4, name="Meetings", color="#f59e0b"),
    ]
