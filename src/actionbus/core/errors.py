"""
Structured error types for the action bus.

Every error raised by the bus extends :class:`BusError`, which carries a
category for routing, an :class:`ErrorContext` with structured metadata, and
an optional chained cause. Callers can catch the whole family with a single
``except BusError`` clause, or a narrower branch of the hierarchy.

Manifesto:
    - **Typed Error Hierarchy:** Structural problems, registration problems,
      loop misuse and aborted runs are different types
    - **Rich Context:** Errors carry the action, service and run they concern
    - **Error Chaining:** The original handler exception is preserved as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                         BusError                                 │
        │              (category, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  StructuralError     RegistrationError     LoopError            │
        │  (VALIDATION)        (CONFIG)              (ORCHESTRATION)      │
        │                                                                  │
        │  ContainerError      RunAbortedError       RollbackError        │
        │  (CONFIG)            (ORCHESTRATION)       (ORCHESTRATION)      │
        └─────────────────────────────────────────────────────────────────┘

    Concrete subclasses live in :mod:`actionbus.orchestration.exceptions`.

Examples:
    >>> error = BusError("Something went wrong")
    >>> error.category
    <ErrorCategory.INTERNAL: 'INTERNAL'>

    >>> error = BusError("Handler failed").with_context(action="billing.charge")
    >>> error.context.action
    'billing.charge'

Guardrails:
    ❌ DON'T: Raise a bare Exception from engine code
    ✅ DO: Use the matching BusError subclass

    ❌ DON'T: Swallow the handler exception when aborting a run
    ✅ DO: Pass it as cause= so the traceback keeps the root failure

Tags:
    error-handling, exception-hierarchy, error-context, actionbus
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification.

    Attributes:
        VALIDATION: Structural problems found before a run starts
        CONFIG: Registration and container wiring problems
        ORCHESTRATION: Loop misuse, aborted runs, failed compensations
        INTERNAL: Bugs, unexpected state
    """

    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    ORCHESTRATION = "ORCHESTRATION"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        action: Full name of the action involved (``service.name``)
        service_id: Service the action belongs to
        run_id: Identifier of the run in which the error occurred
        subject: Subscription subject key, when relevant
        metadata: Additional key-value pairs
    """

    action: str | None = None
    service_id: str | None = None
    run_id: str | None = None
    subject: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["action", "service_id", "run_id", "subject"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class BusError(Exception):
    """
    Base exception for all action bus errors.

    Subclasses set ``default_category`` to classify themselves; the category
    can still be overridden per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BusError:
        """
        Add context to this error (fluent API).

        Usage:
            raise BusError("Failed").with_context(action="billing.charge")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CATEGORY BASES
# =============================================================================


class StructuralError(BusError):
    """
    Registry contents are structurally invalid.

    Raised by the validator before any task executes. Never recoverable at
    run time: the registrations must be fixed.
    """

    default_category = ErrorCategory.VALIDATION


class RegistrationError(BusError):
    """Action registration or lookup error."""

    default_category = ErrorCategory.CONFIG


class LoopError(BusError):
    """Run loop used in an invalid state."""

    default_category = ErrorCategory.ORCHESTRATION


class ContainerError(BusError):
    """Handler object could not be constructed from its scope."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BusError",
    "StructuralError",
    "RegistrationError",
    "LoopError",
    "ContainerError",
]
