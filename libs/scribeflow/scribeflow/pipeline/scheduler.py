"""Background task tracking for deferred retries and fire-and-forget batches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[None]]


class DelayedTaskScheduler:
    """Runs coroutines on the current event loop after an optional delay.

    Armed tasks cannot be revoked individually; `shutdown()` cancels whatever
    is still pending when the process exits. Nothing is persisted.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run(self, delay_s: float, factory: TaskFactory, name: str) -> None:
        if delay_s > 0:
            await asyncio.sleep(delay_s)
        try:
            await factory()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("background task failed (name=%s)", name)

    def schedule(self, delay_s: float, factory: TaskFactory, *, name: str = "task") -> asyncio.Task[None] | None:
        if self._closed:
            logger.warning("scheduler closed, dropping task (name=%s)", name)
            return None
        task = asyncio.get_running_loop().create_task(self._run(max(0.0, float(delay_s)), factory, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def spawn(self, factory: TaskFactory, *, name: str = "task") -> asyncio.Task[None] | None:
        return self.schedule(0.0, factory, name=name)

    async def wait_idle(self, timeout_s: float | None = None) -> None:
        """Wait until no tasks remain, including tasks scheduled by running tasks."""

        async def _drain() -> None:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await asyncio.wait_for(_drain(), timeout=timeout_s)

    async def shutdown(self) -> None:
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("scheduler stopped (cancelled=%d)", len(tasks))
