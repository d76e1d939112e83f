"""Tests for the single-slot deferred callback."""

import pytest

from work_timesheet.core.scheduler import ScheduledTask


@pytest.mark.asyncio
async def test_callback_runs_after_delay(sleeper):
    calls = []
    task = ScheduledTask("test", sleep=sleeper)
    task.schedule(0.5, lambda: calls.append("ran"))
    assert task.pending
    await task.wait()
    assert calls == ["ran"]
    assert sleeper.delays == [0.5]
    assert not task.pending


@pytest.mark.asyncio
async def test_rescheduling_replaces_pending_run():
    calls = []
    task = ScheduledTask("test")
    task.schedule(0.01, lambda: calls.append("first"))
    task.schedule(0.01, lambda: calls.append("second"))
    await task.wait()
    assert calls == ["second"]


@pytest.mark.asyncio
async def test_cancel():
    calls = []
    task = ScheduledTask("test")
    task.schedule(0.01, lambda: calls.append("ran"))
    assert task.cancel() is True
    assert task.cancel() is False
    await task.wait()
    assert calls == []


@pytest.mark.asyncio
async def test_callback_may_reschedule_itself(sleeper):
    calls = []
    task = ScheduledTask("test", sleep=sleeper)

    def callback():
        calls.append(len(calls))
        if len(calls) < 3:
            task.schedule(1.0 * len(calls), callback)

    task.schedule(0.0, callback)
    await task.wait()
    assert calls == [0, 1, 2]
    assert sleeper.delays == [0.0, 1.0, 2.0]


def test_schedule_without_running_loop_fails():
    task = ScheduledTask("test")
    with pytest.raises(RuntimeError):
        task.schedule(0.1, lambda: None)
