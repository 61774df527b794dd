"""
Request queue that caps concurrent upstream reads and never runs two
operations for the same user at the same time.
"""
import asyncio
import bisect
import itertools
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Set, Tuple

from .errors import QueueCleared

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 3


class _QueueItem:
    __slots__ = ("user_key", "operation", "priority", "timestamp", "future", "sort_key")

    def __init__(self, user_key, operation, priority, timestamp, seq, future):
        self.user_key = user_key
        self.operation = operation
        self.priority = priority
        self.timestamp = timestamp
        self.future = future
        # Higher priority first, then older first; seq keeps equal timestamps FIFO
        self.sort_key: Tuple[int, float, int] = (-priority, timestamp, seq)

    def __lt__(self, other: "_QueueItem") -> bool:
        return self.sort_key < other.sort_key


class RequestQueue:
    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT):
        self.max_concurrent = max_concurrent
        self._queue: List[_QueueItem] = []
        self._running: Dict[Hashable, _QueueItem] = {}  # user_key -> executing item
        self._active = 0
        self._seq = itertools.count()
        self._tasks: Set[asyncio.Task] = set()

    async def enqueue(
        self,
        user_key: Hashable,
        operation: Callable[[], Awaitable[Any]],
        priority: int = 0,
    ) -> Any:
        """
        Queue an operation and wait for its result.

        The operation's exception, if any, is raised unchanged to the caller.
        A second operation for a user whose operation is running waits its turn;
        it is not merged with the running one.
        """
        future = asyncio.get_running_loop().create_future()
        item = _QueueItem(user_key, operation, priority, time.monotonic(), next(self._seq), future)
        bisect.insort(self._queue, item)
        self._process_queue()
        return await future

    def _process_queue(self):
        while self._active < self.max_concurrent:
            item = self._next_item()
            if item is None:
                return
            self._running[item.user_key] = item
            self._active += 1
            task = asyncio.create_task(self._execute(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _next_item(self):
        for index, item in enumerate(self._queue):
            if item.future.done():
                continue  # caller stopped waiting; dropped below
            if item.user_key not in self._running:
                del self._queue[index]
                return item
        self._queue = [item for item in self._queue if not item.future.done()]
        return None

    async def _execute(self, item: _QueueItem):
        try:
            result = await item.operation()
        except Exception as e:
            if not item.future.done():
                item.future.set_exception(e)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._active -= 1
            if self._running.get(item.user_key) is item:
                del self._running[item.user_key]
            self._process_queue()

    def status(self) -> dict:
        return {
            "queue_length": len(self._queue),
            "running_count": self._active,
        }

    def clear_user(self, user_key: Hashable):
        """
        Drop a user's queued (not yet started) operations and forget its
        running flag. An operation already executing keeps running.
        """
        remaining = []
        dropped = 0
        for item in self._queue:
            if item.user_key == user_key:
                if not item.future.done():
                    item.future.set_exception(QueueCleared(f"Queue cleared for {user_key}"))
                dropped += 1
            else:
                remaining.append(item)
        self._queue = remaining
        self._running.pop(user_key, None)
        if dropped:
            logger.info(f"Dropped {dropped} queued requests for {user_key}")
        self._process_queue()
