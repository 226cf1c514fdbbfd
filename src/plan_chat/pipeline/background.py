"""Detached best-effort tasks whose failures are logged, never raised."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from plan_chat.observability.logger import get_logger

logger = get_logger("background")


class BackgroundTasks:
    """Fire-and-forget runner for side effects such as memory writes.

    ``spawn`` returns immediately. The caller never awaits the work and never
    sees its exception; failures are logged under the task's name. References
    are held until completion so tasks are not garbage collected mid-flight.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("background_task_cancelled", task=task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight task, including ones spawned while draining."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
