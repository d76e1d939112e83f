"""Tests for saving, retries, storage cleanup and mutations."""

import datetime as dt
import json

import pytest

from work_timesheet.core.persistence import PersistenceManager

PRIMARY_KEY = "workTimesheet_data"
BACKUP_KEY = "workTimesheet_backup"

FIXED_NOW = dt.datetime(2024, 3, 5, 9, 30, tzinfo=dt.timezone.utc)


def _retry_delays(sleeper, config):
    return [d for d in sleeper.delays if d != config.save_debounce]


@pytest.fixture
def fixed_manager(store, view, config, sleeper):
    manager = PersistenceManager(
        store, view, config, sleep=sleeper, clock=lambda: FIXED_NOW
    )
    manager.load()
    return manager


@pytest.mark.asyncio
async def test_save_writes_identical_copies(fixed_manager, store):
    fixed_manager.add_entry("2024-03-05", 1, 8)
    await fixed_manager.drain()

    primary = json.loads(store.get_item(PRIMARY_KEY))
    backup = json.loads(store.get_item(BACKUP_KEY))
    assert primary == backup
    assert primary["lastSaved"] == FIXED_NOW.isoformat()
    assert [p["name"] for p in primary["projects"]] == [
        p.name for p in fixed_manager.projects
    ]
    assert primary["entries"][0]["projectId"] == 1
    assert primary["entries"][0]["hours"] == 8.0


@pytest.mark.asyncio
async def test_deferred_step_publishes_last_saved(fixed_manager, view):
    fixed_manager.save()
    assert fixed_manager.last_saved_at is None
    await fixed_manager.drain()
    assert fixed_manager.last_saved_at == FIXED_NOW
    assert view.saved_times == [FIXED_NOW]


@pytest.mark.asyncio
async def test_deferred_step_is_debounced(store, view, config):
    config.save_debounce = 0.01
    manager = PersistenceManager(store, view, config)
    manager.load()

    manager.save()
    manager.save()
    manager.save()
    await manager.drain()

    assert len(view.saved_times) == 1


@pytest.mark.asyncio
async def test_retry_backoff_then_success(
    make_flaky_store, view, config, sleeper
):
    store = make_flaky_store(failures=2)
    manager = PersistenceManager(store, view, config, sleep=sleeper)
    manager.load()

    manager.save_with_retry()
    assert manager.retry_count == 1
    await manager.drain()

    assert _retry_delays(sleeper, config) == [1.0, 2.0]
    assert store.primary_writes == 3
    assert manager.retry_count == 0
    assert store.get_item(PRIMARY_KEY) == store.get_item(BACKUP_KEY)
    assert "error" not in view.levels()
    assert len(view.saved_times) == 1


@pytest.mark.asyncio
async def test_retries_give_up_with_notification(
    make_flaky_store, view, config, sleeper
):
    store = make_flaky_store(failures=100)
    manager = PersistenceManager(store, view, config, sleep=sleeper)
    manager.load()

    manager.save_with_retry()
    await manager.drain()

    assert _retry_delays(sleeper, config) == [1.0, 2.0, 3.0]
    assert store.primary_writes == config.max_retries + 1
    assert view.notifications.count(("Failed to save data", "error")) == 1
    assert not manager.has_pending_work
    assert store.get_item(PRIMARY_KEY) is None
    # The deferred step never publishes without a successful write.
    assert view.saved_times == []


@pytest.mark.asyncio
async def test_new_save_sequence_resets_retry_count(
    make_flaky_store, view, config, sleeper
):
    store = make_flaky_store(failures=1)
    manager = PersistenceManager(store, view, config, sleep=sleeper)
    manager.load()

    manager.save_with_retry()
    assert manager.retry_count == 1
    # A mutation starts a new sequence, replacing the pending retry.
    manager.add_project("Research")
    assert manager.retry_count == 0
    await manager.drain()
    assert store.primary_writes == 2
    assert _retry_delays(sleeper, config) == []


def _fill_namespace(store, names):
    for name in names:
        store.set_item(name, "x")


def test_cleanup_removes_smallest_keys(manager, store):
    extra = [f"workTimesheet_a{i}" for i in range(10)]
    _fill_namespace(store, extra + [PRIMARY_KEY, BACKUP_KEY, "otherApp_x"])

    removed = manager.cleanup_storage()

    assert removed == extra[:5]
    remaining = set(store.namespaced_keys())
    assert remaining == set(extra[5:]) | {PRIMARY_KEY, BACKUP_KEY}
    assert store.get_item("otherApp_x") == "x"


def test_cleanup_never_evicts_live_keys(manager, store):
    # Both live keys sort before every other key here.
    extra = [f"workTimesheet_x{i}" for i in range(10)]
    _fill_namespace(store, extra + [PRIMARY_KEY, BACKUP_KEY])

    removed = manager.cleanup_storage()

    assert removed == extra[:5]
    assert store.get_item(PRIMARY_KEY) == "x"
    assert store.get_item(BACKUP_KEY) == "x"


def test_cleanup_below_threshold_does_nothing(manager, store):
    _fill_namespace(store, [f"workTimesheet_a{i}" for i in range(10)])
    assert manager.cleanup_storage() == []
    assert len(store.namespaced_keys()) == 10


@pytest.mark.asyncio
async def test_failed_save_triggers_cleanup(make_flaky_store, view, config, sleeper):
    store = make_flaky_store(failures=1)
    _fill_namespace(store, [f"workTimesheet_a{i}" for i in range(11)])
    manager = PersistenceManager(store, view, config, sleep=sleeper)
    manager.load()

    manager.save_with_retry()
    await manager.drain()

    assert "workTimesheet_a0" not in store.namespaced_keys()
    assert store.get_item(PRIMARY_KEY) is not None


@pytest.mark.asyncio
async def test_add_entry_stamps_and_refreshes(fixed_manager, view, store):
    entry_id = fixed_manager.add_entry(dt.date(2024, 3, 5), "2", "1.5")

    entry = fixed_manager.entries[-1]
    assert entry.id == entry_id
    assert entry.project_id == 2
    assert entry.hours == 1.5
    assert entry.synced is True
    assert entry.created_at == FIXED_NOW.isoformat()
    assert view.calendar_renders == 1
    assert view.stats_renders == 1
    await fixed_manager.drain()
    stored = json.loads(store.get_item(PRIMARY_KEY))
    assert stored["entries"][0]["id"] == entry_id


@pytest.mark.asyncio
async def test_entries_booked_offline_are_unsynced(store, view, config, sleeper):
    manager = PersistenceManager(store, view, config, sleep=sleeper, online=False)
    manager.load()
    manager.add_entry("2024-03-05", 1, 2)
    assert manager.entries[0].synced is False
    await manager.drain()


@pytest.mark.asyncio
async def test_delete_entry(fixed_manager, view, store):
    keep = fixed_manager.add_entry("2024-03-05", 1, 2)
    gone = fixed_manager.add_entry("2024-03-05", 2, 3)

    assert fixed_manager.delete_entry(gone) is True
    assert fixed_manager.delete_entry("no-such-id") is False
    await fixed_manager.drain()

    assert [e.id for e in fixed_manager.entries] == [keep]
    stored = json.loads(store.get_item(PRIMARY_KEY))
    assert [e["id"] for e in stored["entries"]] == [keep]
    assert view.calendar_renders == 4


@pytest.mark.asyncio
async def test_add_project(fixed_manager, store):
    project = fixed_manager.add_project("Research", "#ABCDEF")
    await fixed_manager.drain()

    assert isinstance(project.id, str)
    assert project.color == "#abcdef"
    stored = json.loads(store.get_item(PRIMARY_KEY))
    assert stored["projects"][-1] == {
        "id": project.id,
        "name": "Research",
        "color": "#abcdef",
    }


@pytest.mark.asyncio
async def test_force_save_notifies(fixed_manager, view, store):
    fixed_manager.force_save()
    await fixed_manager.drain()
    assert ("Saving...", "info") in view.notifications
    assert store.get_item(PRIMARY_KEY) is not None


def test_connectivity_notifications(fixed_manager, view):
    fixed_manager.set_online(False)
    assert fixed_manager.is_online is False
    fixed_manager.set_online(True)
    assert fixed_manager.is_online is True
    assert view.notifications == [
        ("Working offline", "warning"),
        ("Connection restored", "success"),
    ]
