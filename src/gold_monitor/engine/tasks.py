from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger("gold_monitor.tasks")


class BackgroundTasks:
    """Fire-and-forget coroutines whose failures are logged, never raised.

    Keeps a strong reference to every pending task until it finishes.
    """

    def __init__(self, *, on_error: Callable[[str, BaseException], None] | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._on_error = on_error

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error(
            f"{task.get_name()}_failed",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"task": task.get_name()},
        )
        if self._on_error is not None:
            self._on_error(task.get_name(), exc)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
