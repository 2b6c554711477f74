"""Run Loop — strictly sequential FIFO driver of queued tasks.

The loop owns the queue of admitted tasks and a single "current task" slot.
It hands one task at a time to the :class:`TaskHandler` together with the
dispatcher's continuation; the continuation decides what gets queued next
and calls :meth:`Loop.next` to advance.

``next()`` called from inside a continuation does not recurse into the next
task. It records an advance request which the frame that is already driving
the loop picks up once the current task returns, so a chain of any length
runs at constant stack depth.

::

    run(run_ctx, continuation)
        │  guard: not started, queue not empty
        ▼
    ┌─► pop head → current ─► task_handler.handle(current, run_ctx, continuation)
    │                                                 │
    │                         continuation → loop.next()  (advance requested)
    └──────────────────── queue non-empty ◄───────────┘
                          queue empty → started = False
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from actionbus.core.logging import get_logger
from actionbus.orchestration.exceptions import EmptyLoopError, LoopStateError
from actionbus.orchestration.models import Result, Task

if TYPE_CHECKING:
    from actionbus.orchestration.run_context import RunContext
    from actionbus.orchestration.task_handler import TaskHandler

logger = get_logger(__name__)

Continuation = Callable[[Result | None], Any]


class Loop:
    """FIFO queue of tasks plus the driver that executes them one by one."""

    def __init__(self, task_handler: TaskHandler) -> None:
        self._task_handler = task_handler
        self._queue: deque[Task] = deque()
        self._current: Task | None = None
        self._started = False
        self._run: RunContext | None = None
        self._continuation: Continuation | None = None
        self._advance_requested = False
        self._driving = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def current_task(self) -> Task | None:
        return self._current

    def add_task(self, task: Task) -> None:
        if not isinstance(task, Task):
            raise TypeError(f"Expected Task, got {type(task).__name__}")
        self._queue.append(task)

    def is_empty(self) -> bool:
        return not self._queue

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, full_name: object) -> bool:
        return any(task.full_name == full_name for task in self._queue)

    def run(self, run: RunContext, continuation: Continuation) -> None:
        """Start executing queued tasks; returns once the loop stops advancing."""
        if self._started:
            raise LoopStateError()
        if not self._queue:
            raise EmptyLoopError()

        self._run = run
        self._continuation = continuation
        self._started = True
        self._advance_requested = True
        logger.debug("loop.start", queued=len(self._queue))
        self._drive()

    def next(self) -> None:
        """Advance to the next queued task, or go idle when the queue is empty."""
        if not self._started:
            return
        self._advance_requested = True
        if not self._driving:
            self._drive()

    def stop(self) -> None:
        """Go idle without touching queued tasks."""
        self._started = False
        self._advance_requested = False
        self._run = None
        self._continuation = None

    def reset(self) -> None:
        """Go idle and drop every queued task (after an aborted run)."""
        dropped = len(self._queue)
        self._queue.clear()
        self._current = None
        self.stop()
        if dropped:
            logger.debug("loop.reset", dropped=dropped)

    def _drive(self) -> None:
        self._driving = True
        try:
            while self._advance_requested and self._started:
                self._advance_requested = False
                if not self._queue:
                    logger.debug("loop.idle")
                    self.stop()
                    break
                self._current = self._queue.popleft()
                self._task_handler.handle(self._current, self._run, self._continuation)
        finally:
            self._driving = False


__all__ = ["Loop", "Continuation"]
