"""
Structural validation of the bus registries.

Checks run before any task executes and raise a
:class:`~actionbus.core.errors.StructuralError` subclass on the first
problem found:

1. every required action is registered          DependencyNotRegisteredError
2. the requirement graph has no cycle           CycleDetectedError
3. handler references resolve                   HandlerNotFoundError
   and implement ``run()``                      CapabilityError
4. rollback references (when set) resolve       HandlerNotFoundError
   and implement ``rollback()``                 CapabilityError
5. subscription subjects and targets exist      SubscriptionTargetError
6. cross-channel subscriptions target DEFAULT   ChannelViolationError

With a :class:`~actionbus.orchestration.protocols.ValidateCacheHandler`
attached, a fingerprint of both registries is compared with the stored one
and the checks are skipped when nothing changed.
"""

from __future__ import annotations

import inspect
from pathlib import Path

from actionbus.core.hashing import compute_hash
from actionbus.core.logging import get_logger
from actionbus.orchestration.container import Container, ref_name, resolve_ref
from actionbus.orchestration.exceptions import (
    CapabilityError,
    ChannelViolationError,
    CycleDetectedError,
    DependencyNotRegisteredError,
    HandlerNotFoundError,
    SubscriptionTargetError,
)
from actionbus.orchestration.models import Action, Channel, Subscription
from actionbus.orchestration.protocols import Handler, RollbackHandler, ValidateCacheHandler
from actionbus.orchestration.storage import ActionStorage, SubscribeStorage

logger = get_logger(__name__)


class MemoryValidateCacheHandler:
    """Keeps the last validated fingerprint for the lifetime of the process."""

    def __init__(self) -> None:
        self._hash: str | None = None

    def read_hash(self) -> str | None:
        return self._hash

    def write_hash(self, data_hash: str) -> None:
        self._hash = data_hash


class FileValidateCacheHandler:
    """Keeps the last validated fingerprint in a text file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read_hash(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8").strip() or None

    def write_hash(self, data_hash: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(data_hash, encoding="utf-8")


class BusValidator:
    """Validates registered actions and subscriptions."""

    def __init__(
        self,
        subscribe_storage: SubscribeStorage,
        action_storage: ActionStorage,
        container: Container | None = None,
    ) -> None:
        self._subscribe_storage = subscribe_storage
        self._action_storage = action_storage
        self._container = container
        self._cache_handler: ValidateCacheHandler | None = None

    def set_validate_cache_handler(self, handler: ValidateCacheHandler) -> BusValidator:
        if not isinstance(handler, ValidateCacheHandler):
            raise TypeError(f"{type(handler).__name__} does not implement read_hash()/write_hash()")
        self._cache_handler = handler
        return self

    def validate(self) -> None:
        if self._cache_handler is None:
            self._run_validation()
            return

        data_hash = self.data_hash()
        if self._cache_handler.read_hash() == data_hash:
            logger.debug("validation.cache_hit", data_hash=data_hash)
            return

        self._run_validation()
        self._cache_handler.write_hash(data_hash)

    def data_hash(self) -> str:
        """Fingerprint of both registries; changes whenever a registration changes."""
        parts: list[str] = []
        for action in sorted(self._action_storage.get_all(), key=lambda a: a.full_name):
            parts.append(_describe_action(action))
        for key, subscriptions in sorted(self._subscribe_storage.get_all().items()):
            parts.append(f"{key}->{','.join(s.target for s in subscriptions)}")
        return compute_hash(*parts, length=64)

    # ── Checks ───────────────────────────────────────────────────

    def _run_validation(self) -> None:
        actions = self._action_storage.get_all()

        for action in actions:
            self._check_required(action)
        self._check_cycles(actions)

        for action in actions:
            self._check_handler(action)
            self._check_rollback(action)

        for subscriptions in self._subscribe_storage.get_all().values():
            for subscription in subscriptions:
                self._check_subscription(subscription)

        logger.info(
            "validation.passed",
            actions=len(actions),
            subscriptions=sum(len(s) for s in self._subscribe_storage.get_all().values()),
        )

    def _check_required(self, action: Action) -> None:
        for name in sorted(action.required):
            if not self._action_storage.exists(name):
                raise DependencyNotRegisteredError(action.full_name, name)

    def _check_cycles(self, actions: list[Action]) -> None:
        visiting: list[str] = []
        done: set[str] = set()

        def visit(name: str) -> None:
            if name in done:
                return
            if name in visiting:
                raise CycleDetectedError(visiting[visiting.index(name):] + [name])
            visiting.append(name)
            for required in sorted(self._action_storage.get(name).required):
                visit(required)
            visiting.pop()
            done.add(name)

        for action in actions:
            visit(action.full_name)

    def _check_handler(self, action: Action) -> None:
        if self._container is not None and self._container.has_factory(action.handler):
            return
        target = self._resolve(action.handler)
        if not (inspect.isclass(target) and issubclass(target, Handler)):
            raise CapabilityError(ref_name(action.handler), "run()", action=action.full_name)

    def _check_rollback(self, action: Action) -> None:
        if action.rollback is None:
            return
        if self._container is not None and self._container.has_factory(action.rollback):
            return
        target = self._resolve(action.rollback)
        if not (inspect.isclass(target) and issubclass(target, RollbackHandler)):
            raise CapabilityError(ref_name(action.rollback), "rollback()", action=action.full_name)

    def _check_subscription(self, subscription: Subscription) -> None:
        key = subscription.subject_key
        if not self._action_storage.exists(subscription.subject):
            raise SubscriptionTargetError(key, subscription.subject, "subscribed")
        if not self._action_storage.exists(subscription.target):
            raise SubscriptionTargetError(key, subscription.target, "target")

        subject = self._action_storage.get(subscription.subject)
        target = self._action_storage.get(subscription.target)
        if subject.channel != target.channel and target.channel != Channel.DEFAULT.value:
            raise ChannelViolationError(key, target.full_name, subject.channel)

    def _resolve(self, ref):
        try:
            return resolve_ref(ref)
        except LookupError as e:
            raise HandlerNotFoundError(ref_name(ref), str(e)) from e


def _describe_action(action: Action) -> str:
    rollback = ref_name(action.rollback) if action.rollback is not None else ""
    class_map = sorted(f"{ref_name(k)}={ref_name(v)}" for k, v in action.class_map.items())
    return ";".join(
        [
            action.full_name,
            ref_name(action.handler),
            rollback,
            ",".join(sorted(action.required)),
            action.channel,
            ",".join(class_map),
            str(action.repeat),
        ]
    )


__all__ = ["BusValidator", "MemoryValidateCacheHandler", "FileValidateCacheHandler"]
