"""Tests for structural validation and the validation cache."""

from __future__ import annotations

import pytest

from _support.handlers import (
    CreateOrder,
    NotAHandler,
    NotARollback,
    ReleaseStock,
    ReserveStock,
    recorder,
)
from actionbus.orchestration.container import Container
from actionbus.orchestration.exceptions import (
    CapabilityError,
    ChannelViolationError,
    CycleDetectedError,
    DependencyNotRegisteredError,
    HandlerNotFoundError,
    SubscriptionTargetError,
)
from actionbus.orchestration.models import Action, Channel, Subscription
from actionbus.orchestration.storage import ActionStorage, SubscribeStorage
from actionbus.orchestration.validator import (
    BusValidator,
    FileValidateCacheHandler,
    MemoryValidateCacheHandler,
)


class Registries:
    def __init__(self):
        self.actions = ActionStorage()
        self.subscriptions = SubscribeStorage()
        self.container = Container()
        self.validator = BusValidator(self.subscriptions, self.actions, self.container)

    def add(self, full_name: str, handler=None, **kwargs) -> None:
        service_id, name = full_name.split(".")
        self.actions.save(Action(service_id, name, handler or recorder(full_name), **kwargs))

    def subscribe(self, subject: str, target: str) -> None:
        self.subscriptions.save(Subscription.parse(subject, target))


@pytest.fixture
def reg() -> Registries:
    return Registries()


class TestValidRegistries:
    def test_empty(self, reg):
        reg.validator.validate()

    def test_complete_graph(self, reg):
        reg.add("orders.create", CreateOrder)
        reg.add("stock.reserve", "_support.handlers:ReserveStock", rollback=ReleaseStock,
                required={"orders.create"})
        reg.subscribe("orders.create", "stock.reserve")
        reg.validator.validate()

    def test_factory_bound_handler_accepted(self, reg):
        reg.container.bind(NotAHandler, lambda c: CreateOrder())
        reg.add("orders.create", NotAHandler)
        reg.validator.validate()


class TestRequired:
    def test_unregistered_requirement(self, reg):
        reg.add("b.two", required={"a.one"})
        with pytest.raises(DependencyNotRegisteredError) as exc_info:
            reg.validator.validate()
        assert exc_info.value.dependency == "a.one"

    def test_mutual_requirement(self, reg):
        reg.add("a.one", required={"b.two"})
        reg.add("b.two", required={"a.one"})
        with pytest.raises(CycleDetectedError) as exc_info:
            reg.validator.validate()
        assert exc_info.value.cycle[0] == exc_info.value.cycle[-1]

    def test_longer_cycle(self, reg):
        reg.add("a.one", required={"c.three"})
        reg.add("b.two", required={"a.one"})
        reg.add("c.three", required={"b.two"})
        with pytest.raises(CycleDetectedError) as exc_info:
            reg.validator.validate()
        assert len(exc_info.value.cycle) == 4

    def test_self_requirement(self, reg):
        reg.add("a.one", required={"a.one"})
        with pytest.raises(CycleDetectedError):
            reg.validator.validate()


class TestHandlers:
    def test_handler_not_found(self, reg):
        reg.add("a.one", "_support.handlers:Missing")
        with pytest.raises(HandlerNotFoundError, match="Missing"):
            reg.validator.validate()

    def test_handler_module_not_found(self, reg):
        reg.add("a.one", "no_such_module_xyz.Handler")
        with pytest.raises(HandlerNotFoundError):
            reg.validator.validate()

    def test_handler_without_run(self, reg):
        reg.add("a.one", NotAHandler)
        with pytest.raises(CapabilityError, match=r"run\(\)") as exc_info:
            reg.validator.validate()
        assert exc_info.value.context.action == "a.one"

    def test_handler_not_a_class(self, reg):
        reg.add("a.one", "_support.handlers:recorder")
        with pytest.raises(CapabilityError):
            reg.validator.validate()

    def test_rollback_without_capability(self, reg):
        reg.add("a.one", rollback=NotARollback)
        with pytest.raises(CapabilityError, match=r"rollback\(\)"):
            reg.validator.validate()

    def test_rollback_not_found(self, reg):
        reg.add("a.one", rollback="_support.handlers:Gone")
        with pytest.raises(HandlerNotFoundError):
            reg.validator.validate()

    def test_handler_with_rollback_method_accepted_as_rollback(self, reg):
        reg.add("a.one", rollback=CreateOrder)
        reg.validator.validate()


class TestSubscriptions:
    def test_unregistered_subject(self, reg):
        reg.add("b.two")
        reg.subscribe("a.one", "b.two")
        with pytest.raises(SubscriptionTargetError, match="Subscribed action a.one"):
            reg.validator.validate()

    def test_unregistered_target(self, reg):
        reg.add("a.one")
        reg.subscribe("a.one.FAILURE", "b.two")
        with pytest.raises(SubscriptionTargetError) as exc_info:
            reg.validator.validate()
        assert exc_info.value.role == "target"
        assert exc_info.value.subject == "a.one.FAILURE"

    def test_same_private_channel_accepted(self, reg):
        reg.add("a.one", channel="payments")
        reg.add("b.two", channel="payments")
        reg.subscribe("a.one", "b.two")
        reg.validator.validate()

    def test_private_to_default_accepted(self, reg):
        reg.add("a.one", channel="payments")
        reg.add("b.two", channel=Channel.DEFAULT)
        reg.subscribe("a.one", "b.two")
        reg.validator.validate()

    def test_default_to_private_rejected(self, reg):
        reg.add("a.one")
        reg.add("b.two", channel="payments")
        reg.subscribe("a.one", "b.two")
        with pytest.raises(ChannelViolationError, match="not available for channel default"):
            reg.validator.validate()

    def test_private_to_other_private_rejected(self, reg):
        reg.add("a.one", channel="payments")
        reg.add("b.two", channel="shipping")
        reg.subscribe("a.one", "b.two")
        with pytest.raises(ChannelViolationError) as exc_info:
            reg.validator.validate()
        assert exc_info.value.channel == "payments"
        assert exc_info.value.target == "b.two"


class TestValidationCache:
    def test_hash_written_after_validation(self, reg):
        cache = MemoryValidateCacheHandler()
        reg.validator.set_validate_cache_handler(cache)
        reg.add("a.one")

        reg.validator.validate()

        assert cache.read_hash() == reg.validator.data_hash()

    def test_matching_hash_skips_checks(self, reg):
        reg.add("b.two", required={"a.one"})
        cache = MemoryValidateCacheHandler()
        cache.write_hash(reg.validator.data_hash())
        reg.validator.set_validate_cache_handler(cache)

        reg.validator.validate()

    def test_changed_registries_revalidated(self, reg):
        cache = MemoryValidateCacheHandler()
        reg.validator.set_validate_cache_handler(cache)
        reg.add("a.one")
        reg.validator.validate()

        reg.add("b.two", required={"missing.action"})
        with pytest.raises(DependencyNotRegisteredError):
            reg.validator.validate()

    def test_failed_validation_not_cached(self, reg):
        cache = MemoryValidateCacheHandler()
        reg.validator.set_validate_cache_handler(cache)
        reg.add("b.two", required={"a.one"})

        with pytest.raises(DependencyNotRegisteredError):
            reg.validator.validate()
        assert cache.read_hash() is None

    def test_hash_depends_on_registrations(self, reg):
        before = reg.validator.data_hash()
        reg.add("a.one", CreateOrder)
        with_action = reg.validator.data_hash()
        reg.add("b.two", ReserveStock)
        reg.subscribe("a.one", "b.two")

        assert len({before, with_action, reg.validator.data_hash()}) == 3

    def test_set_handler_is_fluent_and_checked(self, reg):
        cache = MemoryValidateCacheHandler()
        assert reg.validator.set_validate_cache_handler(cache) is reg.validator
        with pytest.raises(TypeError):
            reg.validator.set_validate_cache_handler(object())  # type: ignore[arg-type]


class TestFileValidateCacheHandler:
    def test_missing_file(self, tmp_path):
        assert FileValidateCacheHandler(tmp_path / "hash.txt").read_hash() is None

    def test_round_trip_creates_parents(self, tmp_path):
        handler = FileValidateCacheHandler(tmp_path / "cache" / "hash.txt")
        handler.write_hash("abc123")

        assert (tmp_path / "cache" / "hash.txt").read_text() == "abc123"
        assert FileValidateCacheHandler(str(tmp_path / "cache" / "hash.txt")).read_hash() == "abc123"
