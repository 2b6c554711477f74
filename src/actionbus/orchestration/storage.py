"""In-memory storages behind the bus registries.

Four keyed mappings, each owned by the :class:`~actionbus.orchestration.bus.Bus`:

- ``ActionStorage``     full name      → Action        (written at setup)
- ``SubscribeStorage``  subject key    → [Subscription] (written at setup)
- ``TaskStorage``       full name      → completed Task (written during runs)
- ``ResultStorage``     full name      → latest Result  (written during runs)
"""

from __future__ import annotations

from collections.abc import Iterable

from actionbus.core.logging import get_logger
from actionbus.orchestration.exceptions import ActionNotFoundError, DuplicateActionError
from actionbus.orchestration.models import Action, Result, Subscription, Task

logger = get_logger(__name__)


class ActionStorage:
    """Registered actions keyed by full name."""

    def __init__(self) -> None:
        self._actions: dict[str, Action] = {}

    def save(self, action: Action) -> None:
        if not isinstance(action, Action):
            raise TypeError(f"Expected Action, got {type(action).__name__}")
        if action.full_name in self._actions:
            raise DuplicateActionError(action.full_name)
        self._actions[action.full_name] = action
        logger.debug(
            "action_registered",
            action=action.full_name,
            channel=action.channel,
            required=sorted(action.required),
        )

    def get(self, full_name: str) -> Action:
        if full_name not in self._actions:
            raise ActionNotFoundError(full_name)
        return self._actions[full_name]

    def exists(self, full_name: str) -> bool:
        return full_name in self._actions

    def get_all(self) -> list[Action]:
        return list(self._actions.values())

    def __len__(self) -> int:
        return len(self._actions)


class SubscribeStorage:
    """Subscriptions keyed by subject key (``service.action.STATUS``), in registration order."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def save(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.setdefault(subscription.subject_key, [])
        if any(s.target == subscription.target for s in subscribers):
            return
        subscribers.append(subscription)
        logger.debug(
            "subscription_registered",
            subject=subscription.subject_key,
            target=subscription.target,
        )

    def get_subscribers(self, subject_key: str) -> list[Subscription]:
        return list(self._subscriptions.get(subject_key, []))

    def get_all(self) -> dict[str, list[Subscription]]:
        return {key: list(subs) for key, subs in self._subscriptions.items()}


class TaskStorage:
    """Tasks recorded as completed, keyed by full name."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def save(self, task: Task) -> None:
        self._tasks[task.full_name] = task

    def exists(self, full_name: str) -> bool:
        return full_name in self._tasks

    def get_all(self) -> dict[str, Task]:
        return dict(self._tasks)

    def clear(self) -> None:
        self._tasks.clear()


class ResultStorage:
    """Latest result per full action name."""

    def __init__(self) -> None:
        self._results: dict[str, Result] = {}

    def save(self, full_name: str, result: Result) -> None:
        self._results[full_name] = result

    def get(self, full_name: str) -> Result | None:
        return self._results.get(full_name)

    def exists(self, full_name: str) -> bool:
        return full_name in self._results

    def get_all_by_required(self, required: Iterable[str]) -> list[Result]:
        """Stored results for ``required``, in the given order, skipping names without one."""
        return [self._results[name] for name in required if name in self._results]

    def clear(self) -> None:
        self._results.clear()


__all__ = ["ActionStorage", "SubscribeStorage", "TaskStorage", "ResultStorage"]
