"""
Dispatcher — dependency resolution, task admission and result cascading.

The dispatcher is the only component that decides *what* runs next. The
:class:`~actionbus.orchestration.loop.Loop` decides *when*, the
:class:`~actionbus.orchestration.task_handler.TaskHandler` decides *how*.

Manifesto:
    A run is started from a single action. Everything else is discovered:
    requirements are dispatched depth-first before the start task, tasks
    whose requirements are not yet completed are held, and every produced
    Result releases held tasks and fans out to subscribers of its status.

ARCHITECTURE
────────────
::

    start(action)
      │  loop idle?                         no → LoopStateError
      │  build task, dispatch_required()    depth-first over task.required
      │  admit start task                   queue if satisfied, else hold
      ▼
    loop.run(run, on_result)
      │
      └─► on_result(run, result)            once per produced Result
            1. SUCCESS → record task as completed
            2. promote held tasks whose requirements are now completed
            3. dispatch subscribers of "service.action.STATUS"
            4. queue empty and callback set → SUCCEEDED, callback(start result)
            5. otherwise loop.next()

Admission rules:

- a non-repeat task already completed, or already waiting in the queue,
  is dropped (the start task skips the completed check)
- a satisfied task is appended to the queue
- an unsatisfied task is held by full name until a later Result completes
  its requirements; held tasks never time out

Tags:
    actionbus, orchestration, dispatcher, saga, dependency-resolution
"""

from __future__ import annotations

from functools import partial

from actionbus.core.logging import LogContext, get_logger
from actionbus.orchestration.exceptions import LoopStateError
from actionbus.orchestration.loop import Loop
from actionbus.orchestration.models import Result, Task, TaskFactory, subject_key
from actionbus.orchestration.run_context import ExternalCallback, RunContext, RunStatus
from actionbus.orchestration.storage import (
    ActionStorage,
    ResultStorage,
    SubscribeStorage,
    TaskStorage,
)

logger = get_logger(__name__)


class Dispatcher:
    """Admits tasks into the loop and reacts to every produced Result."""

    def __init__(
        self,
        task_factory: TaskFactory,
        task_storage: TaskStorage,
        loop: Loop,
        subscribe_storage: SubscribeStorage,
        action_storage: ActionStorage,
        result_storage: ResultStorage,
    ) -> None:
        self._task_factory = task_factory
        self._task_storage = task_storage
        self._loop = loop
        self._subscribe_storage = subscribe_storage
        self._action_storage = action_storage
        self._result_storage = result_storage

    # ── Run entry point ──────────────────────────────────────────

    def start(
        self,
        start_action: str,
        external_callback: ExternalCallback | None = None,
    ) -> RunContext:
        """
        Run ``start_action`` together with everything it requires.

        Args:
            start_action: Full name of a registered action
            external_callback: Receives the start action's stored Result once
                the queue drains after a produced Result

        Returns:
            The finished RunContext (``SUCCEEDED`` or ``DRAINED``)

        Raises:
            LoopStateError: If a run is already in progress
            ActionNotFoundError: If an involved action is not registered
            RunAbortedError: If a handler failed (after rollback)
        """
        if self._loop.started:
            raise LoopStateError()

        action = self._action_storage.get(start_action)
        run = RunContext(start_action=action.full_name, external_callback=external_callback)

        with LogContext(run_id=run.run_id, start_action=run.start_action):
            logger.info("run.start")
            try:
                task = self._task_factory.create(action)
                self.dispatch_required(run, task)
                self._admit(run, task)
                self._loop.run(run, partial(self.on_result, run))
            except Exception as e:
                self._loop.reset()
                if not run.is_terminal:
                    run.finish(RunStatus.FAILED, e)
                logger.error(
                    "run.failed",
                    error_type=type(e).__name__,
                    executed=run.executed,
                )
                raise

            if not run.is_terminal:
                run.finish(RunStatus.DRAINED)
            self._report_abandoned(run)
            logger.info(
                "run.complete",
                status=run.status.value,
                executed=run.executed,
                duration_seconds=run.duration_seconds,
            )
        return run

    # ── Admission ────────────────────────────────────────────────

    def dispatch_required(
        self,
        run: RunContext,
        task: Task,
        _chain: tuple[str, ...] = (),
    ) -> None:
        """Dispatch every not-yet-completed requirement of ``task``, depth-first."""
        chain = _chain + (task.full_name,)
        for name in sorted(task.required):
            if name in chain or self._task_storage.exists(name):
                continue
            required_task = self._task_factory.create(self._action_storage.get(name))
            self.dispatch_task(run, required_task)
            self.dispatch_required(run, required_task, chain)

    def dispatch_task(self, run: RunContext, task: Task) -> None:
        """Queue or hold ``task`` unless it already completed or is already queued."""
        if not task.repeat and (
            self._task_storage.exists(task.full_name) or task.full_name in self._loop
        ):
            logger.debug("task.dropped", action=task.full_name)
            return
        self._admit(run, task)

    def _admit(self, run: RunContext, task: Task) -> None:
        if self._is_satisfied(task):
            run.held_tasks.pop(task.full_name, None)
            self._loop.add_task(task)
            logger.debug("task.queued", action=task.full_name)
        else:
            run.held_tasks[task.full_name] = task
            logger.debug("task.held", action=task.full_name, missing=self._missing(task))

    def _is_satisfied(self, task: Task) -> bool:
        return all(self._task_storage.exists(name) for name in task.required)

    def _missing(self, task: Task) -> list[str]:
        return sorted(name for name in task.required if not self._task_storage.exists(name))

    # ── Continuation ─────────────────────────────────────────────

    def on_result(self, run: RunContext, result: Result | None) -> None:
        """React to the Result of the loop's current task."""
        if result is None:
            self._loop.next()
            return

        task = self._loop.current_task
        if result.is_success:
            self._task_storage.save(task)

        self._dispatch_held(run)
        self._dispatch_subscribers(run, task, result)

        if self._loop.is_empty() and run.external_callback is not None:
            start_result = self._result_storage.get(run.start_action)
            run.finish(RunStatus.SUCCEEDED)
            self._loop.stop()
            logger.debug("run.callback", last_action=task.full_name)
            run.external_callback(start_result)
            return

        self._loop.next()

    def _dispatch_held(self, run: RunContext) -> None:
        # Collect first: promotion must not mutate the map being scanned
        ready = [name for name, task in run.held_tasks.items() if self._is_satisfied(task)]
        for name in ready:
            self._loop.add_task(run.held_tasks.pop(name))
            logger.debug("task.promoted", action=name)

    def _dispatch_subscribers(self, run: RunContext, task: Task, result: Result) -> None:
        subject = subject_key(task.full_name, result.status)
        for subscription in self._subscribe_storage.get_subscribers(subject):
            target = self._task_factory.create(self._action_storage.get(subscription.target))
            logger.debug("cascade.dispatch", subject=subject, target=target.full_name)
            self.dispatch_required(run, target)
            self.dispatch_task(run, target)

    def _report_abandoned(self, run: RunContext) -> None:
        if run.held_tasks:
            logger.warning(
                "run.held_tasks_abandoned",
                held=sorted(run.held_tasks),
                status=run.status.value,
            )


__all__ = ["Dispatcher"]
