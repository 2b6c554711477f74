"""
Bus — façade that wires the registries, the engine and the validator.

Example::

    from actionbus import Action, Bus, Result

    class CreateOrder:
        def run(self):
            return Result.success(Order(id=7))

    class ChargeCard:
        def __init__(self, order: Order):
            self.order = order

        def run(self):
            return Result.success()

    bus = Bus()
    bus.add_action(Action("orders", "create", CreateOrder))
    bus.add_action(Action("billing", "charge", ChargeCard, required={"orders.create"}))
    bus.subscribe("orders.create", "billing.charge")

    # The callback receives the start action's Result (orders.create),
    # not the Result of the last task that ran
    run = bus.start_action("orders.create", callback=print)
    run.executed   # ["orders.create", "billing.charge"]

Registries and the completed-task/result stores outlive a run: work
completed by one run satisfies requirements of later runs until
:meth:`Bus.reset` is called.
"""

from __future__ import annotations

from typing import Any

from actionbus.core.logging import configure_from_settings, get_logger
from actionbus.core.settings import BusSettings, get_settings
from actionbus.orchestration.container import Container, Factory
from actionbus.orchestration.dispatcher import Dispatcher
from actionbus.orchestration.loop import Loop
from actionbus.orchestration.models import Action, Result, Subscription, TaskFactory
from actionbus.orchestration.protocols import ValidateCacheHandler
from actionbus.orchestration.rollback import Rollback
from actionbus.orchestration.run_context import ExternalCallback, RunContext
from actionbus.orchestration.storage import (
    ActionStorage,
    ResultStorage,
    SubscribeStorage,
    TaskStorage,
)
from actionbus.orchestration.task_handler import TaskHandler
from actionbus.orchestration.validator import BusValidator, FileValidateCacheHandler

logger = get_logger(__name__)


class Bus:
    """Registers actions and subscriptions, validates them and starts runs."""

    def __init__(
        self,
        settings: BusSettings | None = None,
        *,
        container: Container | None = None,
        validate_cache_handler: ValidateCacheHandler | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        configure_from_settings(self.settings)
        self.container = container or Container()

        self._action_storage = ActionStorage()
        self._subscribe_storage = SubscribeStorage()
        self._task_storage = TaskStorage()
        self._result_storage = ResultStorage()

        task_handler = TaskHandler(
            Rollback(), self._result_storage, self._task_storage, self.container
        )
        self._loop = Loop(task_handler)
        self._dispatcher = Dispatcher(
            TaskFactory(),
            self._task_storage,
            self._loop,
            self._subscribe_storage,
            self._action_storage,
            self._result_storage,
        )

        self._validator = BusValidator(
            self._subscribe_storage, self._action_storage, self.container
        )
        if validate_cache_handler is None and self.settings.validation_cache_path is not None:
            validate_cache_handler = FileValidateCacheHandler(self.settings.validation_cache_path)
        if validate_cache_handler is not None:
            self._validator.set_validate_cache_handler(validate_cache_handler)

    # ── Registration ─────────────────────────────────────────────

    def add_action(self, action: Action) -> Bus:
        self._action_storage.save(action)
        return self

    def subscribe(self, subject: str, target: str) -> Bus:
        """Dispatch ``target`` when ``subject`` (``svc.action[.STATUS]``) produces that status."""
        self._subscribe_storage.save(Subscription.parse(subject, target))
        return self

    def bind(self, ref: Any, factory: Factory) -> Bus:
        """Build ``ref`` with ``factory(container)`` instead of autowiring it."""
        self.container.bind(ref, factory)
        return self

    # ── Queries ──────────────────────────────────────────────────

    def action_exists(self, full_name: str) -> bool:
        return self._action_storage.exists(full_name)

    def get_action(self, full_name: str) -> Action:
        return self._action_storage.get(full_name)

    def get_result(self, full_name: str) -> Result | None:
        return self._result_storage.get(full_name)

    def is_completed(self, full_name: str) -> bool:
        return self._task_storage.exists(full_name)

    @property
    def running(self) -> bool:
        return self._loop.started

    # ── Runs ─────────────────────────────────────────────────────

    def validate(self) -> None:
        self._validator.validate()

    def start_action(
        self,
        full_name: str,
        callback: ExternalCallback | None = None,
    ) -> RunContext:
        """Validate (when configured) and run ``full_name`` to completion."""
        if self.settings.validate_on_start:
            self.validate()
        return self._dispatcher.start(full_name, callback)

    def reset(self) -> None:
        """Forget completed tasks and stored results from previous runs."""
        self._task_storage.clear()
        self._result_storage.clear()
        logger.debug("bus.reset")


__all__ = ["Bus"]
