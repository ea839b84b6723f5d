"""
Registry of background tasks so the application can shut down cleanly.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Coroutine, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class TaskPriority(str, Enum):
    """Task priority levels for shutdown ordering"""
    HIGH = "high"         # Given a grace period on shutdown
    NORMAL = "normal"     # Cancelled on shutdown


class TaskInfo:
    def __init__(self, task: asyncio.Task, name: str, priority: TaskPriority = TaskPriority.NORMAL):
        self.task = task
        self.name = name
        self.priority = priority
        self.created_at = datetime.now(timezone.utc)

    def __repr__(self):
        return f"TaskInfo(name={self.name}, priority={self.priority}, done={self.task.done()})"


class TaskRegistry:
    """Tracks spawned tasks; entries drop out when tasks finish."""

    def __init__(self):
        self._tasks: Dict[str, TaskInfo] = {}
        self._shutdown_event = asyncio.Event()

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str,
        priority: TaskPriority = TaskPriority.NORMAL,
    ) -> asyncio.Task:
        """Create and register a task on the running loop."""
        if self._shutdown_event.is_set():
            coro.close()
            raise RuntimeError("task registry is shutting down")
        task = asyncio.create_task(coro, name=name)
        self._tasks[name] = TaskInfo(task, name, priority)

        def _on_done(done: asyncio.Task) -> None:
            info = self._tasks.get(name)
            if info is not None and info.task is done:
                del self._tasks[name]
            if done.cancelled():
                return
            exc = done.exception()
            if exc is not None:
                logger.error("Background task failed", task=name, error=str(exc))

        task.add_done_callback(_on_done)
        logger.debug("Registered task", task=name, priority=priority.value)
        return task

    def get(self, name: str) -> Optional[asyncio.Task]:
        info = self._tasks.get(name)
        return info.task if info else None

    def active_tasks(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {
                "priority": info.priority.value,
                "created_at": info.created_at.isoformat(),
                "done": info.task.done(),
            }
            for name, info in self._tasks.items()
        }

    async def graceful_shutdown(self, timeout: float = 30.0) -> Dict[str, str]:
        """Wait up to ``timeout`` for high-priority tasks, cancel the rest."""
        logger.info("Starting graceful task shutdown", tasks=len(self._tasks))
        self._shutdown_event.set()
        results: Dict[str, str] = {}

        infos = [i for i in self._tasks.values() if not i.task.done()]
        high = [i for i in infos if i.priority == TaskPriority.HIGH]
        if high and timeout > 0:
            done, _pending = await asyncio.wait([i.task for i in high], timeout=timeout)
            for info in high:
                if info.task in done:
                    results[info.name] = "completed"

        for info in infos:
            if not info.task.done():
                info.task.cancel()
                results[info.name] = "cancelled"

        if infos:
            await asyncio.gather(*(i.task for i in infos), return_exceptions=True)

        logger.info("Task shutdown complete", results=results)
        return results
