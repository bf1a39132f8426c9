"""
Progress Reporting

Observer for research progress. The driver publishes ProgressEvent
snapshots; subscribers are a plain callback ``(percent, label)`` and/or
asyncio queues. Publishing never blocks and never raises into the driver.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from src.utils.logging_config import get_logger

from ..state import ProgressEvent, ResearchProgress

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str], Union[None, Awaitable[Any]]]


class ProgressReporter:
    """
    Fan out progress snapshots to subscribers.

    Args:
        callback: Optional ``(percent, label)`` callback. Coroutine callbacks
            are scheduled as tasks and not awaited.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._queues: list[asyncio.Queue] = []
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self) -> "asyncio.Queue[ProgressEvent]":
        """Return an unbounded queue that receives every subsequent event."""
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def publish(self, progress: ResearchProgress) -> ProgressEvent:
        event = ProgressEvent(
            percent=progress.percent,
            label=progress.current_label,
            completed_queries=progress.completed_queries,
            total_queries=progress.total_queries,
        )

        for queue in self._queues:
            queue.put_nowait(event)

        if self._callback is not None:
            try:
                result = self._callback(event.percent, event.label)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._on_task_done)
            except Exception:
                logger.warning("Progress callback failed", label=event.label, exc_info=True)

        return event

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Progress callback failed", error=str(task.exception()))
