"""
Actionbus Orchestration — saga-style action execution engine.

WHY
───
A business operation often spans several services: create the order,
reserve stock, charge the card. Each step depends on earlier ones, some
steps fire only when another ends with a given status, and a failure
halfway must undo what already happened. The engine runs such a graph of
registered actions in-process, one task at a time.

ARCHITECTURE
────────────
::

    Bus (façade)
      ├── ActionStorage / SubscribeStorage     ─ registrations
      ├── TaskStorage / ResultStorage          ─ completed work, latest results
      ├── BusValidator                         ─ structural checks (+ hash cache)
      └── Dispatcher                           ─ admission, hold, cascade
            └── Loop                           ─ FIFO driver, one task at a time
                  └── TaskHandler              ─ scope, inject, run(), store
                        └── Rollback           ─ compensate on failure

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. exceptions.py     ─ error hierarchy
2. models.py         ─ Action, Task, Result, Subscription
3. protocols.py      ─ Handler / RollbackHandler / ValidateCacheHandler
4. storage.py        ─ in-memory registries
5. container.py      ─ per-service instantiation scope
6. run_context.py    ─ per-run state
7. loop.py           ─ run loop
8. task_handler.py   ─ single-task execution
9. rollback.py       ─ compensation
10. dispatcher.py    ─ dependency resolution and cascade
11. validator.py     ─ structural validation
12. bus.py           ─ façade
"""

from actionbus.orchestration.bus import Bus
from actionbus.orchestration.container import Container, resolve_ref
from actionbus.orchestration.dispatcher import Dispatcher
from actionbus.orchestration.exceptions import (
    ActionNotFoundError,
    CapabilityError,
    ChannelViolationError,
    CycleDetectedError,
    DependencyNotRegisteredError,
    DuplicateActionError,
    EmptyLoopError,
    HandlerNotFoundError,
    LoopStateError,
    RollbackError,
    RunAbortedError,
    SubscriptionTargetError,
)
from actionbus.orchestration.loop import Loop
from actionbus.orchestration.models import (
    Action,
    Channel,
    Result,
    ResultStatus,
    Subscription,
    Task,
    TaskFactory,
)
from actionbus.orchestration.protocols import Handler, RollbackHandler, ValidateCacheHandler
from actionbus.orchestration.rollback import Rollback
from actionbus.orchestration.run_context import RunContext, RunStatus, ServiceScope
from actionbus.orchestration.storage import (
    ActionStorage,
    ResultStorage,
    SubscribeStorage,
    TaskStorage,
)
from actionbus.orchestration.task_handler import TaskHandler
from actionbus.orchestration.validator import (
    BusValidator,
    FileValidateCacheHandler,
    MemoryValidateCacheHandler,
)

__all__ = [
    # Façade
    "Bus",
    # Data model
    "Action",
    "Channel",
    "Result",
    "ResultStatus",
    "Subscription",
    "Task",
    "TaskFactory",
    # Protocols
    "Handler",
    "RollbackHandler",
    "ValidateCacheHandler",
    # Engine
    "Dispatcher",
    "Loop",
    "TaskHandler",
    "Rollback",
    "RunContext",
    "RunStatus",
    "ServiceScope",
    "Container",
    "resolve_ref",
    # Storage
    "ActionStorage",
    "SubscribeStorage",
    "TaskStorage",
    "ResultStorage",
    # Validation
    "BusValidator",
    "MemoryValidateCacheHandler",
    "FileValidateCacheHandler",
    # Exceptions
    "ActionNotFoundError",
    "CapabilityError",
    "ChannelViolationError",
    "CycleDetectedError",
    "DependencyNotRegisteredError",
    "DuplicateActionError",
    "EmptyLoopError",
    "HandlerNotFoundError",
    "LoopStateError",
    "RollbackError",
    "RunAbortedError",
    "SubscriptionTargetError",
]
