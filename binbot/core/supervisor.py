"""
Task supervisor.
Runs the component loops side by side; the first one to fail takes the
others down with it so the process never keeps running half broken.
"""
import asyncio
from typing import Coroutine, Dict, Set

import structlog

from binbot.errors import FatalTaskError

logger = structlog.get_logger(__name__)


class TaskSupervisor:
    """Owns a group of named tasks and cancels all of them on the first failure."""

    def __init__(self):
        self._tasks: Dict[asyncio.Task, str] = {}

    def spawn(self, name: str, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks[task] = name
        logger.debug("task spawned", task=name)
        return task

    @property
    def task_names(self) -> Set[str]:
        return set(self._tasks.values())

    async def run(self) -> None:
        """Wait for every task; raise FatalTaskError when one of them fails."""
        try:
            while self._tasks:
                done, _ = await asyncio.wait(
                    set(self._tasks), return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    name = self._tasks.pop(task)
                    if task.cancelled():
                        logger.info("task cancelled", task=name)
                        continue
                    error = task.exception()
                    if error is not None:
                        logger.error("task failed, cancelling siblings", task=name,
                                     error=str(error), exc_info=error)
                        raise FatalTaskError(name, error) from error
                    logger.info("task finished", task=name)
        finally:
            await self.cancel_all()

    async def cancel_all(self) -> None:
        """Cancel every remaining task and wait for them to unwind."""
        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("tasks cancelled", count=len(tasks))
