"""
Capability protocols implemented by user code.

Protocols define contracts without inheritance: any class with a matching
``run()`` is a handler, any class with a matching ``rollback()`` can
compensate. The validator checks registered classes against these protocols
before a run starts, so a mis-wired action fails at validation time instead
of halfway through a saga.

Architecture:
    ::

        Handler               run() -> Result | None      ── executes an action
        RollbackHandler       rollback() -> None          ── compensates it
        ValidateCacheHandler  read_hash() / write_hash()  ── validation cache store

Examples:
    >>> class Reserve:
    ...     def run(self):
    ...         return Result.success()
    ...     def rollback(self):
    ...         release_stock()
    >>> isinstance(Reserve(), RollbackHandler)
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from actionbus.orchestration.models import Result


@runtime_checkable
class Handler(Protocol):
    """Execution capability of an action."""

    def run(self) -> Result | None:
        """Do the work; return a Result, or None to only advance the loop."""
        ...


@runtime_checkable
class RollbackHandler(Protocol):
    """Compensation capability of an action."""

    def rollback(self) -> None:
        """Undo the effects of a previously executed handler."""
        ...


@runtime_checkable
class ValidateCacheHandler(Protocol):
    """Storage for the fingerprint of the last successfully validated registries."""

    def read_hash(self) -> str | None:
        ...

    def write_hash(self, data_hash: str) -> None:
        ...


__all__ = ["Handler", "RollbackHandler", "ValidateCacheHandler"]
