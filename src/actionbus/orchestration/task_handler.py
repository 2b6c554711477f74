"""Task Handler — executes exactly one task and reports its outcome.

Steps for every task:

1. Copy the bus container into a scope for ``task.service_id`` and retain it
   on the run; inject payloads of the results stored for ``task.required``;
   apply the task's class map.
2. Build the handler object from the scope.
3. Call ``handler.run()`` — a :class:`Result` or ``None``.
4. Store a produced Result under the task's full name.
5. Hand the Result (possibly ``None``) to the continuation.

A failure in steps 1-3 aborts the whole run: the task is recorded as
completed so it is never re-attempted, every retained scope is compensated
by :class:`~actionbus.orchestration.rollback.Rollback`, and
:class:`RunAbortedError` is raised with the handler's exception as cause.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from actionbus.core.logging import get_logger
from actionbus.orchestration.container import Container, ref_name
from actionbus.orchestration.exceptions import RunAbortedError
from actionbus.orchestration.models import Result, Task
from actionbus.orchestration.rollback import Rollback
from actionbus.orchestration.run_context import RunContext, RunStatus, ServiceScope
from actionbus.orchestration.storage import ResultStorage, TaskStorage

logger = get_logger(__name__)


class TaskHandler:
    """Runs one task inside a fresh per-service instantiation scope."""

    def __init__(
        self,
        rollback: Rollback,
        result_storage: ResultStorage,
        task_storage: TaskStorage,
        container: Container,
    ) -> None:
        self._rollback = rollback
        self._result_storage = result_storage
        self._task_storage = task_storage
        self._container = container

    def handle(
        self,
        task: Task,
        run: RunContext,
        callback: Callable[[Result | None], Any],
    ) -> None:
        run.executed.append(task.full_name)
        logger.debug("task.start", action=task.full_name, handler=ref_name(task.handler))

        try:
            handler = self._prepare_service(task, run)
            result = self._execute(handler, task)
        except Exception as e:
            raise self._abort(task, run, e) from e

        if result is not None:
            self._result_storage.save(task.full_name, result)

        logger.info(
            "task.complete",
            action=task.full_name,
            status=result.status if result is not None else None,
        )
        callback(result)

    def _prepare_service(self, task: Task, run: RunContext) -> Any:
        scope = ServiceScope(task=task, container=self._container.copy())
        run.retain_scope(task.service_id, scope)

        for result in self._result_storage.get_all_by_required(sorted(task.required)):
            if result.data is not None:
                scope.container.set(result.data)

        if task.class_map:
            scope.container.set_class_map(task.class_map)

        scope.handler = scope.container.instance(task.handler)
        return scope.handler

    def _execute(self, handler: Any, task: Task) -> Result | None:
        if not callable(getattr(handler, "run", None)):
            raise TypeError(f"Handler {ref_name(task.handler)} has no run() method")

        result = handler.run()
        if result is not None and not isinstance(result, Result):
            raise TypeError(
                f"Handler {ref_name(task.handler)} must return Result or None, "
                f"got {type(result).__name__}"
            )
        return result

    def _abort(self, task: Task, run: RunContext, error: Exception) -> RunAbortedError:
        logger.error(
            "task.failed",
            action=task.full_name,
            error_type=type(error).__name__,
            error=str(error),
        )
        self._task_storage.save(task)
        run.finish(RunStatus.FAILED, error)

        compensated = self._rollback.run(run.scopes, original_error=error)

        return RunAbortedError(
            task.full_name,
            cause=error,
            run_id=run.run_id,
            compensated=compensated,
        )


__all__ = ["TaskHandler"]
