import asyncio
from typing import Awaitable, Set

from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)


class BackgroundTaskRunner:
    """
    Owns the detached tasks spawned after a request commits.

    Tasks are tracked until they finish so they can be drained at shutdown
    (and awaited in tests); an exception escaping a task is logged here
    instead of disappearing with the task object.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Spawned background task {name}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self, timeout: float = None) -> int:
        """Wait for live tasks (including ones spawned while waiting). Returns how many are left."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        live = {t for t in self._tasks if not t.done()}
        while live:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                break
            await asyncio.wait(live, timeout=remaining)
            live = {t for t in self._tasks if not t.done()}
        # let pending done-callbacks run
        await asyncio.sleep(0)
        if live:
            logger.warning(f"{len(live)} background tasks still running after drain")
        return len(live)
