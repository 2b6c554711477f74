"""
Run Context — per-run state threaded through dispatcher, loop and task handler.

One ``RunContext`` is created when a start action is dispatched and is
discarded once the run reaches a terminal state. Nothing about a run lives
on the dispatcher itself, so a finished (or aborted) run cannot leak held
tasks or instantiation scopes into the next one.

Lifecycle::

    Dispatcher.start()  →  RunContext(status=RUNNING)
        │  held_tasks      full name → Task waiting on requirements
        │  scopes          service id → ServiceScope (container + handler)
        │  executed        full names in the order the loop ran them
        ▼
    SUCCEEDED  queue drained, external callback fired
    DRAINED    queue drained, no callback path applied
    FAILED     handler raised, rollback executed, RunAbortedError raised
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from actionbus.orchestration.container import Container
from actionbus.orchestration.models import Result, Task

ExternalCallback = Callable[[Result | None], Any]


class RunStatus(str, Enum):
    """Lifecycle state of a run."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    DRAINED = "drained"
    FAILED = "failed"


@dataclass
class ServiceScope:
    """Instantiation scope retained for one service during a run."""

    task: Task
    container: Container
    handler: Any = None

    @property
    def constructed(self) -> bool:
        return self.handler is not None


@dataclass
class RunContext:
    """
    State of a single run.

    Attributes:
        start_action: Full name of the action the run was started with
        external_callback: Called with the start action's Result on success
        run_id: Unique identifier for this run
        held_tasks: Tasks waiting for their requirements, keyed by full name
        scopes: Instantiation scopes keyed by service id, in construction order
        executed: Full names of tasks handed to the task handler, in order
        status: Current lifecycle state
        error: Exception that aborted the run, if any
    """

    start_action: str
    external_callback: ExternalCallback | None = None
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    held_tasks: dict[str, Task] = field(default_factory=dict)
    scopes: dict[str, ServiceScope] = field(default_factory=dict)
    executed: list[str] = field(default_factory=list)
    status: RunStatus = RunStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    error: BaseException | None = None

    def retain_scope(self, service_id: str, scope: ServiceScope) -> None:
        """Keep ``scope`` for ``service_id``; a newer scope replaces and moves to the end."""
        self.scopes.pop(service_id, None)
        self.scopes[service_id] = scope

    def finish(self, status: RunStatus, error: BaseException | None = None) -> None:
        self.status = status
        self.error = error
        self.completed_at = datetime.now(UTC)

    @property
    def is_terminal(self) -> bool:
        return self.status != RunStatus.RUNNING

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


__all__ = ["RunStatus", "ServiceScope", "RunContext", "ExternalCallback"]
