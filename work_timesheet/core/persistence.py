"""
The persistence manager: owns the in-memory projects and entries and keeps
them in durable storage.

Every snapshot is written twice, to a primary and a backup key. Loading
prefers the primary, promotes the backup when the primary is missing, and
seeds default projects when neither can be read. Failed writes trigger a
storage cleanup and are retried with a linear backoff.
"""

import asyncio
import datetime as dt
import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from work_timesheet.exceptions import SnapshotCorruptError, StorageWriteError
from work_timesheet.models.config import AppConfig
from work_timesheet.models.timesheet import (
    Entry,
    Project,
    ProjectId,
    Snapshot,
    default_projects,
)
from work_timesheet.storage.kv_store import KeyValueStore
from work_timesheet.utils.ids import generate_id
from work_timesheet.utils.structured_logger import StorageLogger, StructuredLogger

from .scheduler import ScheduledTask, SleepFunc
from .views import TimesheetView

log = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _valid_items(items: Any, model: type[BaseModel], kind: str) -> list:
    if items is None:
        return []
    if not isinstance(items, list):
        raise SnapshotCorruptError(f"Stored {kind} are not a list.")
    valid = []
    for index, item in enumerate(items):
        try:
            valid.append(model.model_validate(item))
        except ValidationError as e:
            log.warning(
                f"[yellow]Skipping unreadable stored {kind[:-1]} #{index}: "
                f"{e.error_count()} error(s)[/yellow]"
            )
    return valid


def parse_snapshot(raw: str) -> Snapshot:
    """
    Decodes a stored snapshot.

    Projects and entries are validated one at a time; an unreadable item is
    skipped with a warning rather than discarding the whole snapshot.

    Raises:
        SnapshotCorruptError: If the value is not JSON or not a JSON object.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise SnapshotCorruptError(f"Stored snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotCorruptError("Stored snapshot is not a JSON object.")

    try:
        return Snapshot(
            projects=_valid_items(data.get("projects"), Project, "projects"),
            entries=_valid_items(data.get("entries"), Entry, "entries"),
            last_saved=data.get("lastSaved"),
        )
    except ValidationError as e:
        raise SnapshotCorruptError(f"Stored snapshot is unreadable: {e}") from e


class PersistenceManager:
    """
    Mediates all reads and writes of timesheet data.

    One instance per data directory; collaborators receive it explicitly.
    Mutations are synchronous, while the deferred "last saved" update and
    save retries run as asyncio tasks, so mutating methods must be called
    with an event loop running.
    """

    def __init__(
        self,
        store: KeyValueStore,
        view: TimesheetView,
        config: AppConfig,
        *,
        sleep: SleepFunc = asyncio.sleep,
        online: bool = True,
        clock: Callable[[], dt.datetime] = _utcnow,
        storage_logger: StorageLogger | None = None,
    ):
        self.store = store
        self.view = view
        self.config = config
        self.is_online = online
        self._clock = clock
        self._events = storage_logger or StorageLogger(
            StructuredLogger(__name__, enable_json=False)
        )

        self.projects: list[Project] = []
        self.entries: list[Entry] = []

        self.retry_count = 0
        self.max_retries = config.max_retries
        self.last_saved_at: dt.datetime | None = None
        self._last_successful_write: dt.datetime | None = None

        self._debounce = ScheduledTask("deferred-save", sleep=sleep)
        self._retry = ScheduledTask("save-retry", sleep=sleep)

    # Loading

    def load(self) -> str:
        """
        Populates the in-memory collections from storage. Never raises.

        Returns:
            Where the data came from: 'primary', 'backup' or 'defaults'.
        """
        primary_key = self.config.primary_key
        backup_key = self.config.backup_key
        snapshot: Snapshot | None = None
        source = "defaults"

        try:
            primary_raw = self.store.get_item(primary_key)
            if primary_raw:
                snapshot = parse_snapshot(primary_raw)
                source = "primary"
            else:
                backup_raw = self.store.get_item(backup_key)
                if backup_raw:
                    snapshot = parse_snapshot(backup_raw)
                    source = "backup"
                    self.store.set_item(primary_key, backup_raw)
                    log.info(
                        "[yellow]Primary data was missing; restored it from the "
                        "backup copy.[/yellow]"
                    )
        except (SnapshotCorruptError, StorageWriteError) as e:
            log.warning(f"[yellow]Could not load saved data: {e}[/yellow]")
            return self.load_from_backup()

        if snapshot is not None:
            self._adopt(snapshot)
        else:
            self.load_initial_data()

        self._events.snapshot_loaded(source, len(self.projects), len(self.entries))
        return source

    def load_from_backup(self) -> str:
        """Reads only the backup copy, seeding defaults if it is unusable."""
        source = "defaults"
        backup_raw = self.store.get_item(self.config.backup_key)
        if backup_raw:
            try:
                self._adopt(parse_snapshot(backup_raw))
                source = "backup"
            except SnapshotCorruptError as e:
                log.warning(f"[yellow]Backup copy is unreadable too: {e}[/yellow]")
                self.load_initial_data()
        else:
            self.load_initial_data()

        self._events.snapshot_loaded(source, len(self.projects), len(self.entries))
        return source

    def load_initial_data(self) -> None:
        """Seeds the built-in projects and an empty entry list."""
        self.projects = default_projects()
        self.entries = []

    def _adopt(self, snapshot: Snapshot) -> None:
        self.projects = list(snapshot.projects)
        self.entries = list(snapshot.entries)
        migrated = self.migrate_entries()
        if migrated:
            log.info(f"Assigned ids to {migrated} legacy entries.")

    def migrate_entries(self) -> int:
        """Gives an id to every entry that lacks one. Returns how many changed."""
        migrated = 0
        for entry in self.entries:
            if not entry.id:
                entry.id = generate_id()
                migrated += 1
        return migrated

    # Saving

    def snapshot(self) -> Snapshot:
        return Snapshot(
            projects=self.projects,
            entries=self.entries,
            last_saved=self._clock().isoformat(),
        )

    def save(self) -> Snapshot:
        """
        Writes the current collections to the primary and then the backup key.

        On a storage failure the namespace is cleaned up and the error is
        re-raised. The debounced "last saved" update is scheduled either way.

        Raises:
            StorageWriteError: If either copy could not be written.
        """
        snapshot = self.snapshot()
        payload = snapshot.to_json()
        try:
            self.store.set_item(self.config.primary_key, payload)
            self.store.set_item(self.config.backup_key, payload)
        except StorageWriteError as e:
            log.warning(f"[yellow]Saving to storage failed: {e}[/yellow]")
            self.cleanup_storage()
            raise
        else:
            self._last_successful_write = self._clock()
            self._events.save_completed(
                len(self.projects), len(self.entries), len(payload.encode("utf-8"))
            )
        finally:
            self._debounce.schedule(self.config.save_debounce, self._deferred_save)
        return snapshot

    def _deferred_save(self) -> None:
        if self._last_successful_write is None:
            return
        self.last_saved_at = self._last_successful_write
        self.view.show_last_saved(self.last_saved_at)

    def cleanup_storage(self) -> list[str]:
        """
        Frees space when the namespace holds more keys than the threshold by
        deleting the lexicographically smallest keys.

        The live primary and backup keys are never evicted. This is a
        name-order policy, not least-recently-used.
        """
        keys = self.store.namespaced_keys()
        if len(keys) <= self.config.cleanup_threshold:
            return []

        live = {self.config.primary_key, self.config.backup_key}
        candidates = sorted(k for k in keys if k not in live)
        removed = []
        for key in candidates[: self.config.cleanup_batch]:
            if self.store.remove_item(key):
                removed.append(key)

        if removed:
            self._events.cleanup_performed(removed)
        return removed

    def save_with_retry(self) -> None:
        """Starts a fresh save attempt sequence, replacing any pending retry."""
        self.retry_count = 0
        self._retry.cancel()
        self._attempt_save()

    def _attempt_save(self) -> None:
        try:
            self.save()
        except StorageWriteError as e:
            if self.retry_count < self.max_retries:
                self.retry_count += 1
                delay = self.config.retry_base_delay * self.retry_count
                self._events.save_failed(str(e), self.retry_count, delay)
                self._retry.schedule(delay, self._attempt_save)
            else:
                log.error(
                    f"[red]Could not save after {self.retry_count + 1} attempts: "
                    f"{e}[/red]"
                )
                self._events.save_abandoned(str(e), self.retry_count + 1)
                self.view.notify("Failed to save data", "error")
        else:
            self.retry_count = 0

    def force_save(self) -> None:
        self.save_with_retry()
        self.view.notify("Saving...", "info")

    async def drain(self) -> None:
        """Waits for pending retries and the deferred save step to finish."""
        while self._retry.pending or self._debounce.pending:
            await self._retry.wait()
            await self._debounce.wait()

    @property
    def has_pending_work(self) -> bool:
        return self._retry.pending or self._debounce.pending

    # Mutations

    def _refresh_views(self) -> None:
        self.view.render_calendar(self.projects, self.entries)
        self.view.render_stats(self.projects, self.entries)

    def add_entry(
        self, date: dt.date | str, project_id: ProjectId, hours: float | str
    ) -> str:
        """
        Books hours against a project on a day and saves.

        Returns:
            The id of the new entry.
        """
        entry = Entry(
            id=generate_id(),
            date=date,
            project_id=project_id,
            hours=float(hours),
            created_at=self._clock().isoformat(),
            synced=self.is_online,
        )
        self.entries.append(entry)
        self._refresh_views()
        self.save_with_retry()
        return entry.id

    def delete_entry(self, entry_id: str) -> bool:
        """Removes an entry by id and saves. Returns False if no entry matched."""
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.id != entry_id]
        removed = len(self.entries) != before
        self._refresh_views()
        self.save_with_retry()
        return removed

    def add_project(self, name: str, color: str = "#3b82f6") -> Project:
        project = Project(id=generate_id(), name=name, color=color)
        self.projects.append(project)
        self._refresh_views()
        self.save_with_retry()
        return project

    # Network state

    def set_online(self, online: bool) -> None:
        """Handles a connectivity change."""
        self.is_online = online
        if online:
            self.sync()
            self.view.notify("Connection restored", "success")
        else:
            self.view.notify("Working offline", "warning")

    def sync(self) -> None:
        # No backend exists yet; entries keep their `synced` flag as stamped.
        if self.is_online:
            log.info("Synchronizing data...")
