"""
Timers and background tasks on the cooperative asyncio loop
"""

import asyncio
import logging


logger = logging.getLogger(__name__)


class AsyncioScheduler:
    """Wall-clock timers and task spawning for the session.

    Everything runs on one event loop, so callbacks never interleave with a
    render tick or a detection callback.
    """

    def __init__(self, loop=None):
        self.loop = loop or asyncio.get_running_loop()
        self._tasks = set()

    def call_later(self, delay, callback, *args):
        return self.loop.call_later(delay, callback, *args)

    def spawn(self, coro):
        task = self.loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())

    async def drain(self):
        """Wait for every spawned task (used on shutdown)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
