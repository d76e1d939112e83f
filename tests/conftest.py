"""Shared test fixtures.

Everything here works on temporary directories; nothing touches the real
config or data directories.
"""

from __future__ import annotations

import datetime as dt

import pytest

from work_timesheet.core.persistence import PersistenceManager
from work_timesheet.exceptions import StorageQuotaExceededError
from work_timesheet.models.config import AppConfig
from work_timesheet.storage.kv_store import KeyValueStore

PRIMARY_KEY = "workTimesheet_data"
BACKUP_KEY = "workTimesheet_backup"


class RecordingView:
    """A TimesheetView that records every call instead of drawing anything."""

    def __init__(self):
        self.calendar_renders = 0
        self.stats_renders = 0
        self.notifications: list[tuple[str, str]] = []
        self.saved_times: list[dt.datetime] = []

    def render_calendar(self, projects, entries):
        self.calendar_renders += 1

    def render_stats(self, projects, entries):
        self.stats_renders += 1

    def notify(self, message, level="info"):
        self.notifications.append((message, level))

    def show_last_saved(self, when):
        self.saved_times.append(when)

    def levels(self) -> list[str]:
        return [level for _, level in self.notifications]


class RecordingSleep:
    """Stands in for asyncio.sleep: records the delay and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FlakyStore(KeyValueStore):
    """A store whose primary-key writes fail a set number of times."""

    def __init__(self, *args, failures: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures_left = failures
        self.primary_writes = 0

    def set_item(self, key: str, value: str) -> None:
        if key == PRIMARY_KEY:
            self.primary_writes += 1
            if self.failures_left > 0:
                self.failures_left -= 1
                raise StorageQuotaExceededError("simulated quota exceeded")
        super().set_item(key, value)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(data_dir=str(tmp_path / "data"))


@pytest.fixture
def store(tmp_path) -> KeyValueStore:
    return KeyValueStore(tmp_path / "storage")


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def manager(store, view, config, sleeper) -> PersistenceManager:
    return PersistenceManager(store, view, config, sleep=sleeper)


@pytest.fixture
def make_flaky_store(tmp_path):
    def _make(failures: int) -> FlakyStore:
        return FlakyStore(tmp_path / "flaky", failures=failures)

    return _make
