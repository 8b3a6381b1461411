from __future__ import annotations

import asyncio

import pytest

from scribeflow.pipeline.scheduler import DelayedTaskScheduler


@pytest.mark.asyncio
async def test_schedule_runs_after_delay() -> None:
    scheduler = DelayedTaskScheduler()
    ran: list[str] = []

    async def _job() -> None:
        ran.append("job")

    scheduler.schedule(0.01, _job, name="job")
    assert ran == []
    await scheduler.wait_idle(timeout_s=2)
    assert ran == ["job"]
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_failing_task_is_logged_not_raised(caplog) -> None:
    scheduler = DelayedTaskScheduler()

    async def _boom() -> None:
        raise RuntimeError("boom")

    scheduler.spawn(_boom, name="boom")
    await scheduler.wait_idle(timeout_s=2)
    assert "background task failed (name=boom)" in caplog.text


@pytest.mark.asyncio
async def test_shutdown_cancels_armed_tasks() -> None:
    scheduler = DelayedTaskScheduler()
    ran: list[str] = []

    async def _job() -> None:
        ran.append("late")

    task = scheduler.schedule(60.0, _job, name="late")
    await scheduler.shutdown()

    assert task is not None and task.cancelled()
    assert ran == []
    assert scheduler.schedule(0, _job) is None
    await asyncio.sleep(0)
    assert ran == []
