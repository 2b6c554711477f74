"""Orchestration exceptions — structured error hierarchy.

All exceptions inherit from ``actionbus.core.errors.BusError`` so that
callers can catch the entire family with a single ``except`` clause.

Hierarchy::

    BusError  (from actionbus.core.errors)
      ├── StructuralError                 ── raised by validate(), before any task runs
      │     ├── DependencyNotRegisteredError  ── required action not registered
      │     ├── CycleDetectedError            ── requirement graph has a cycle
      │     ├── HandlerNotFoundError          ── handler/rollback ref cannot be imported
      │     ├── CapabilityError               ── ref lacks run()/rollback()
      │     ├── SubscriptionTargetError       ── subject or target not registered
      │     └── ChannelViolationError         ── cross-channel subscription
      ├── RegistrationError
      │     ├── DuplicateActionError          ── full name registered twice
      │     └── ActionNotFoundError           ── lookup of unknown full name
      ├── LoopError
      │     ├── LoopStateError                ── loop already started
      │     └── EmptyLoopError                ── nothing queued to run
      ├── ContainerError                      ── (from core) handler construction failed
      ├── RunAbortedError                     ── handler failed, rollback done
      └── RollbackError                       ── a compensation itself failed
"""

from __future__ import annotations

from actionbus.core.errors import (
    BusError,
    ErrorCategory,
    LoopError,
    RegistrationError,
    StructuralError,
)


# =============================================================================
# STRUCTURAL ERRORS
# =============================================================================


class DependencyNotRegisteredError(StructuralError):
    """Raised when an action requires an action that is not registered."""

    def __init__(self, action: str, dependency: str):
        self.action = action
        self.dependency = dependency
        super().__init__(
            f"Required action {dependency} of {action} not registered in the bus"
        )
        self.with_context(action=action)


class CycleDetectedError(StructuralError):
    """Raised when the requirement graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"Cycle detected in required actions: {cycle_str}")


class HandlerNotFoundError(StructuralError):
    """Raised when a handler or rollback reference cannot be resolved."""

    def __init__(self, ref: str, reason: str | None = None):
        self.ref = ref
        message = f"Class {ref} not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CapabilityError(StructuralError):
    """Raised when a resolved reference does not implement the required capability."""

    def __init__(self, ref: str, capability: str, action: str | None = None):
        self.ref = ref
        self.capability = capability
        super().__init__(f"Class {ref} must implement {capability}")
        if action:
            self.with_context(action=action)


class SubscriptionTargetError(StructuralError):
    """Raised when a subscription references an unregistered action."""

    def __init__(self, subject: str, action: str, role: str):
        self.subject = subject
        self.action = action
        self.role = role
        super().__init__(f"{role.capitalize()} action {action} not registered in the bus")
        self.with_context(subject=subject, action=action)


class ChannelViolationError(StructuralError):
    """Raised when a subscription crosses channels into a non-default action."""

    def __init__(self, subject: str, target: str, channel: str):
        self.subject = subject
        self.target = target
        self.channel = channel
        super().__init__(f"Action {target} not available for channel {channel}")
        self.with_context(subject=subject, action=target)


# =============================================================================
# REGISTRATION ERRORS
# =============================================================================


class DuplicateActionError(RegistrationError):
    """Raised when an action full name is registered twice."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        super().__init__(f"Action {full_name} is already registered")


class ActionNotFoundError(RegistrationError):
    """Raised when a requested action is not registered."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        super().__init__(f"Action {full_name} not registered in the bus")
        self.with_context(action=full_name)


# =============================================================================
# LOOP ERRORS
# =============================================================================


class LoopStateError(LoopError):
    """Raised when the loop is started while already running."""

    def __init__(self, message: str = "Event bus loop is already started"):
        super().__init__(message)


class EmptyLoopError(LoopError):
    """Raised when the loop is started with nothing queued."""

    def __init__(self, message: str = "No task queued to run the event bus"):
        super().__init__(message)


# =============================================================================
# RUN ERRORS
# =============================================================================


class RunAbortedError(BusError):
    """Raised after a handler failure once compensations have been attempted.

    ``cause`` is the exception raised by the failing handler.
    """

    default_category = ErrorCategory.ORCHESTRATION

    def __init__(
        self,
        action: str,
        cause: BaseException,
        run_id: str | None = None,
        compensated: list[str] | None = None,
    ):
        self.action = action
        self.run_id = run_id
        self.compensated = list(compensated or [])
        super().__init__(f"Run aborted: action {action} failed: {cause}", cause=cause)
        self.with_context(action=action, run_id=run_id)


class RollbackError(BusError):
    """Raised when a compensation fails or is misconfigured."""

    default_category = ErrorCategory.ORCHESTRATION

    def __init__(
        self,
        action: str,
        message: str,
        cause: BaseException | None = None,
    ):
        self.action = action
        self.original_error: BaseException | None = None
        super().__init__(f"Rollback of {action} failed: {message}", cause=cause)
        self.with_context(action=action)


__all__ = [
    "DependencyNotRegisteredError",
    "CycleDetectedError",
    "HandlerNotFoundError",
    "CapabilityError",
    "SubscriptionTargetError",
    "ChannelViolationError",
    "DuplicateActionError",
    "ActionNotFoundError",
    "LoopStateError",
    "EmptyLoopError",
    "RunAbortedError",
    "RollbackError",
]
