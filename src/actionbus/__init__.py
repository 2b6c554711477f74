"""
Actionbus - in-process saga orchestration over registered actions.

- actionbus.core: errors, structured logging, settings, hashing
- actionbus.orchestration: data model, dispatcher, loop, rollback, bus façade
"""

__version__ = "0.1.0"

from actionbus.core.errors import BusError, StructuralError
from actionbus.orchestration import (
    Action,
    Bus,
    Channel,
    Result,
    ResultStatus,
    RollbackError,
    RunAbortedError,
    RunContext,
    RunStatus,
)

__all__ = [
    "__version__",
    "Action",
    "Bus",
    "BusError",
    "Channel",
    "Result",
    "ResultStatus",
    "RollbackError",
    "RunAbortedError",
    "RunContext",
    "RunStatus",
    "StructuralError",
]
