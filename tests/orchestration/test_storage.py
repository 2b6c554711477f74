"""Tests for the in-memory storages."""

from __future__ import annotations

import pytest

from _support.handlers import CreateOrder
from actionbus.orchestration.exceptions import ActionNotFoundError, DuplicateActionError
from actionbus.orchestration.models import Action, Result, Subscription, TaskFactory
from actionbus.orchestration.storage import (
    ActionStorage,
    ResultStorage,
    SubscribeStorage,
    TaskStorage,
)


class TestActionStorage:
    def test_save_and_get(self):
        storage = ActionStorage()
        action = Action("orders", "create", CreateOrder)
        storage.save(action)

        assert storage.get("orders.create") is action
        assert storage.exists("orders.create")
        assert storage.get_all() == [action]
        assert len(storage) == 1

    def test_duplicate_raises(self):
        storage = ActionStorage()
        storage.save(Action("orders", "create", CreateOrder))
        with pytest.raises(DuplicateActionError, match="already registered") as exc_info:
            storage.save(Action("orders", "create", CreateOrder))
        assert exc_info.value.full_name == "orders.create"

    def test_get_unknown_raises(self):
        with pytest.raises(ActionNotFoundError) as exc_info:
            ActionStorage().get("orders.missing")
        assert exc_info.value.full_name == "orders.missing"

    def test_bad_type_raises(self):
        with pytest.raises(TypeError, match="Expected Action"):
            ActionStorage().save("orders.create")  # type: ignore[arg-type]


class TestSubscribeStorage:
    def test_order_preserved(self):
        storage = SubscribeStorage()
        storage.save(Subscription("orders.create", "billing.charge"))
        storage.save(Subscription("orders.create", "stock.reserve"))

        targets = [s.target for s in storage.get_subscribers("orders.create.SUCCESS")]
        assert targets == ["billing.charge", "stock.reserve"]

    def test_duplicate_target_ignored(self):
        storage = SubscribeStorage()
        storage.save(Subscription("orders.create", "billing.charge"))
        storage.save(Subscription("orders.create", "billing.charge"))
        assert len(storage.get_subscribers("orders.create.SUCCESS")) == 1

    def test_statuses_kept_apart(self):
        storage = SubscribeStorage()
        storage.save(Subscription("orders.create", "billing.charge"))
        storage.save(Subscription("orders.create", "mail.apology", status="FAILURE"))

        assert set(storage.get_all()) == {"orders.create.SUCCESS", "orders.create.FAILURE"}
        assert storage.get_subscribers("orders.create.PENDING") == []

    def test_returned_lists_are_copies(self):
        storage = SubscribeStorage()
        storage.save(Subscription("orders.create", "billing.charge"))
        storage.get_subscribers("orders.create.SUCCESS").clear()
        assert len(storage.get_subscribers("orders.create.SUCCESS")) == 1


class TestTaskStorage:
    def test_save_exists_clear(self):
        storage = TaskStorage()
        task = TaskFactory().create(Action("orders", "create", CreateOrder))
        storage.save(task)

        assert storage.exists("orders.create")
        assert storage.get_all() == {"orders.create": task}

        storage.clear()
        assert not storage.exists("orders.create")


class TestResultStorage:
    def test_latest_result_wins(self):
        storage = ResultStorage()
        storage.save("orders.create", Result.failure())
        storage.save("orders.create", Result.success(1))

        assert storage.get("orders.create") == Result.success(1)
        assert storage.exists("orders.create")

    def test_get_missing_returns_none(self):
        assert ResultStorage().get("orders.create") is None

    def test_get_all_by_required_skips_missing_and_keeps_order(self):
        storage = ResultStorage()
        storage.save("a.one", Result.success(1))
        storage.save("c.three", Result.success(3))

        results = storage.get_all_by_required(["c.three", "b.two", "a.one"])
        assert [r.data for r in results] == [3, 1]

    def test_clear(self):
        storage = ResultStorage()
        storage.save("a.one", Result.success())
        storage.clear()
        assert not storage.exists("a.one")
