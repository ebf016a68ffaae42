from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Set

logger = logging.getLogger(__name__)


class BackgroundRunner:
    """Detached best-effort work that must outlive the request that spawned it.

    Each job is a blocking callable run in a worker thread under a semaphore and
    its own timeout. Failures and timeouts are logged, never raised. Strong
    references to the tasks are kept until they finish.
    """

    def __init__(self, *, max_concurrency: int = 8, timeout: float = 10.0) -> None:
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._timeout = timeout
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, name: str, fn: Callable[..., Any], *args: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run(name, fn, *args), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        async with self._semaphore:
            try:
                await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self._timeout)
            except asyncio.TimeoutError:
                logger.warning("Background task %s timed out after %.1fs", name, self._timeout)
            except Exception:
                logger.exception("Background task %s failed", name)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for the jobs spawned so far (used on shutdown and in tests)."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d background task(s) still running at drain", len(pending))
