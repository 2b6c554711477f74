"""Data model of the action bus: Action, Task, Result, Subscription.

Manifesto:
    Actions are registered once and never change; tasks are cheap snapshots
    of an action scheduled inside one run; results are what a handler hands
    back. Keeping the three separate lets the dispatcher reason about
    "registered", "scheduled" and "done" without ever mutating a definition.

ARCHITECTURE
────────────
::

    Action  (frozen, registered)  ── TaskFactory.create() ──►  Task (frozen, per dispatch)
                                                                 │
                                                    handler.run()│
                                                                 ▼
                                                     Result (status, data)
                                                                 │
                                 subject "service.action.STATUS" │
                                                                 ▼
                                          Subscription ──► target Action

Example::

    from actionbus.orchestration.models import Action, Result

    class Charge:
        def run(self):
            return Result.success({"charged": 10})

    action = Action("billing", "charge", Charge, required={"orders.create"})
    action.full_name   # "billing.charge"

Tags:
    actionbus, orchestration, data-model, action, task, result
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

HandlerRef = type | str


class ResultStatus(str, Enum):
    """Built-in result statuses. Handlers may return any other non-empty string."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class Channel(str, Enum):
    """Built-in channels. Any other string is a private channel."""

    DEFAULT = "default"


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def _check_identifier(kind: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{kind} must be a non-empty string")
    if "." in value:
        raise ValueError(f"{kind} must not contain '.': {value!r}")


def full_action_name(service_id: str, name: str) -> str:
    """Join a service id and action name into the bus-wide unique name."""
    return f"{service_id}.{name}"


@dataclass(frozen=True)
class Action:
    """
    A registered, reusable unit of work.

    Attributes:
        service_id: Service the action belongs to
        name: Action name within the service
        handler: Class (or ``"module:Class"`` path) implementing ``run()``
        rollback: Optional class (or path) implementing ``rollback()``
        required: Full names of actions that must complete first
        channel: Isolation tag; ``Channel.DEFAULT`` is visible to every channel
        class_map: Auxiliary bindings ``{abstract: concrete}`` for the container
            (compared, but left out of the hash)
        repeat: Allow the action to run again after it completed in a run
    """

    service_id: str
    name: str
    handler: HandlerRef
    rollback: HandlerRef | None = None
    required: frozenset[str] = field(default_factory=frozenset)
    channel: str = Channel.DEFAULT.value
    class_map: dict[Any, Any] = field(default_factory=dict, hash=False)
    repeat: bool = False

    def __post_init__(self):
        _check_identifier("service_id", self.service_id)
        _check_identifier("name", self.name)
        if isinstance(self.required, str):
            raise TypeError("required must be a collection of full action names, not a string")
        object.__setattr__(self, "required", frozenset(self.required))
        object.__setattr__(self, "channel", _status_value(self.channel))
        object.__setattr__(self, "class_map", dict(self.class_map or {}))

    @property
    def full_name(self) -> str:
        return full_action_name(self.service_id, self.name)


@dataclass(frozen=True)
class Task:
    """A single scheduled execution of an :class:`Action` within a run."""

    service_id: str
    action: str
    handler: HandlerRef
    rollback: HandlerRef | None = None
    required: frozenset[str] = field(default_factory=frozenset)
    class_map: dict[Any, Any] = field(default_factory=dict, hash=False)
    repeat: bool = False

    @property
    def full_name(self) -> str:
        return full_action_name(self.service_id, self.action)

    def __repr__(self) -> str:
        return f"Task({self.full_name}, required={sorted(self.required)}, repeat={self.repeat})"


class TaskFactory:
    """Builds task snapshots from registered actions."""

    def create(self, action: Action) -> Task:
        return Task(
            service_id=action.service_id,
            action=action.name,
            handler=action.handler,
            rollback=action.rollback,
            required=action.required,
            class_map=dict(action.class_map),
            repeat=action.repeat,
        )


@dataclass
class Result:
    """
    Outcome of one task execution.

    Attributes:
        status: ``ResultStatus`` value or a domain-specific status string
        data: Optional payload injected into dependent actions' handlers
    """

    status: str
    data: Any = None

    def __post_init__(self):
        status = _status_value(self.status)
        if not status:
            raise ValueError("Result status must be a non-empty string")
        # Normalize enum members to their plain string value
        self.status = status

    @classmethod
    def success(cls, data: Any = None) -> Result:
        return cls(status=ResultStatus.SUCCESS.value, data=data)

    @classmethod
    def failure(cls, data: Any = None) -> Result:
        return cls(status=ResultStatus.FAILURE.value, data=data)

    @property
    def is_success(self) -> bool:
        return self.status == ResultStatus.SUCCESS.value


@dataclass(frozen=True)
class Subscription:
    """Cascade rule: when ``subject`` ends with ``status``, dispatch ``target``."""

    subject: str
    target: str
    status: str = ResultStatus.SUCCESS.value

    @property
    def subject_key(self) -> str:
        return subject_key(self.subject, self.status)

    @classmethod
    def parse(cls, subject: str, target: str) -> Subscription:
        """
        Build a subscription from ``"service.action"`` or ``"service.action.STATUS"``.

        A two-part subject subscribes to ``SUCCESS``.
        """
        parts = subject.split(".")
        if all(parts):
            if len(parts) == 2:
                return cls(subject=subject, target=target)
            if len(parts) == 3:
                return cls(subject=f"{parts[0]}.{parts[1]}", target=target, status=parts[2])
        raise ValueError(
            f"Subscription subject must be 'service.action' or 'service.action.STATUS', got {subject!r}"
        )


def subject_key(full_name: str, status: Any) -> str:
    """Key under which subscribers of ``full_name`` ending with ``status`` are stored."""
    return f"{full_name}.{_status_value(status)}"


__all__ = [
    "HandlerRef",
    "ResultStatus",
    "Channel",
    "full_action_name",
    "Action",
    "Task",
    "TaskFactory",
    "Result",
    "Subscription",
    "subject_key",
]
