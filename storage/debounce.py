"""Debounced persistence for user edits."""

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

WriteFn = Callable[[], Awaitable[None]]


class DebouncedWriter:
    """Runs each pending write after ``delay`` seconds of quiet, per key.

    ``schedule`` cancels the pending write for the same key and starts its
    timer again, so a burst of edits to one chapter produces a single write
    with the latest state. Writes under other keys are left alone.
    Must be used from inside a running event loop.
    """

    def __init__(self, delay: float = 2.0):
        self.delay = delay
        self._tasks: dict[Hashable, asyncio.Task] = {}
        self._pending: dict[Hashable, WriteFn] = {}

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def schedule(self, key: Hashable, write: WriteFn) -> None:
        self.cancel(key)
        self._pending[key] = write
        self._tasks[key] = asyncio.get_running_loop().create_task(self._run_later(key))

    def cancel(self, key: Optional[Hashable] = None) -> None:
        """Drop the pending write for ``key`` (all of them when ``key`` is None)."""
        keys = list(self._pending) if key is None else [key]
        for k in keys:
            task = self._tasks.pop(k, None)
            if task is not None and not task.done():
                task.cancel()
            self._pending.pop(k, None)

    async def flush(self) -> None:
        """Run every pending write now, in scheduling order."""
        writes = list(self._pending.values())
        self.cancel()
        for write in writes:
            await self._run(write)

    async def _run_later(self, key: Hashable) -> None:
        await asyncio.sleep(self.delay)
        write = self._pending.pop(key, None)
        self._tasks.pop(key, None)
        if write is not None:
            await self._run(write)

    @staticmethod
    async def _run(write: WriteFn) -> None:
        try:
            await write()
        except Exception as e:
            logger.error("Debounced write failed: %s", e)
