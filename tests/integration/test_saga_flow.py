"""
End-to-end saga runs through the Bus.

Order saga used throughout::

    orders.create ──SUCCESS──► stock.reserve ──SUCCESS──► billing.charge
                                  (requires orders.create)   (requires both)
    billing.charge ──FAILURE──► mail.apology
"""

from __future__ import annotations

import json

import pytest

from _support.handlers import (
    ChargeCard,
    CreateOrder,
    DeclineCard,
    recorder,
)
from actionbus.core.logging import configure_logging
from actionbus.orchestration import Action, Bus, Result, RunAbortedError, RunStatus


def _ran(journal) -> list[str]:
    return [name for kind, name in journal if kind == "run"]


def _order_saga(bus: Bus, charge=ChargeCard) -> Bus:
    return (
        bus.add_action(Action("orders", "create", CreateOrder))
        .add_action(
            Action(
                "stock",
                "reserve",
                "_support.handlers:ReserveStock",
                rollback="_support.handlers:ReleaseStock",
                required={"orders.create"},
            )
        )
        .add_action(
            Action("billing", "charge", charge, required={"orders.create", "stock.reserve"})
        )
        .subscribe("orders.create", "stock.reserve")
        .subscribe("stock.reserve", "billing.charge")
    )


class TestEndToEnd:
    def test_subscription_and_requirement(self, bus, make_action, journal):
        bus.add_action(make_action("a", "one"))
        bus.add_action(make_action("b", "two", required={"a.one"}))
        bus.subscribe("a.one", "b.two")
        received: list[Result | None] = []

        run = bus.start_action("a.one", received.append)

        assert _ran(journal) == ["a.one", "b.two"]
        assert len(received) == 1
        assert received[0] is bus.get_result("a.one")
        assert run.status == RunStatus.SUCCEEDED

    def test_order_saga_injects_payloads(self, bus, journal):
        _order_saga(bus)
        received: list[Result | None] = []

        run = bus.start_action("orders.create", received.append)

        assert _ran(journal) == ["orders.create", "stock.reserve", "billing.charge"]
        assert bus.get_result("billing.charge").data == {"order_id": 7, "sku": "SKU-1"}
        assert received[0].data.order_id == 7
        assert run.executed == ["orders.create", "stock.reserve", "billing.charge"]

    def test_starting_from_the_end_pulls_requirements(self, bus, journal):
        _order_saga(bus)

        run = bus.start_action("billing.charge")

        assert _ran(journal) == ["orders.create", "stock.reserve", "billing.charge"]
        assert run.status == RunStatus.DRAINED


class TestSagaFailure:
    def test_failure_compensates_in_reverse(self, bus, journal):
        _order_saga(bus, charge=DeclineCard)
        bus.add_action(Action("mail", "apology", recorder("mail.apology")))
        bus.subscribe("billing.charge.FAILURE", "mail.apology")
        received: list[Result | None] = []

        with pytest.raises(RunAbortedError) as exc_info:
            bus.start_action("orders.create", received.append)

        assert journal == [
            ("run", "orders.create"),
            ("run", "stock.reserve"),
            ("run", "billing.charge"),
            ("rollback", "stock.release:7"),
            ("rollback", "orders.create"),
        ]
        error = exc_info.value
        assert str(error.__cause__) == "card declined"
        assert error.compensated == ["stock.reserve", "orders.create"]
        assert received == []
        assert not bus.running

    def test_bus_reusable_after_failure(self, bus, make_action, journal):
        _order_saga(bus, charge=DeclineCard)
        bus.add_action(make_action("audit", "log"))
        with pytest.raises(RunAbortedError):
            bus.start_action("orders.create")

        journal.clear()
        run = bus.start_action("audit.log")

        assert _ran(journal) == ["audit.log"]
        assert run.status == RunStatus.DRAINED
        # The failed task is recorded as completed and never re-attempted
        assert bus.is_completed("billing.charge")


class TestRunLogging:
    def test_events_carry_run_id(self, bus, capsys):
        configure_logging(level="DEBUG", json_format=True)
        _order_saga(bus)

        run = bus.start_action("orders.create")

        records = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
        run_events = [r for r in records if r.get("run_id") == run.run_id]
        events = [r["event"] for r in run_events]

        assert events[0] == "run.start"
        assert events[-1] == "run.complete"
        assert events.count("task.complete") == 3
        assert all(r["start_action"] == "orders.create" for r in run_events)
        assert run_events[-1]["status"] == "drained"


class TestChainedRuns:
    def _chain(self, bus, make_action) -> tuple:
        bus.add_action(make_action("a", "one"))
        bus.add_action(make_action("c", "next"))
        chained = []

        def start_next(result):
            chained.append(bus.start_action("c.next"))

        return chained, start_next

    def test_callback_starts_next_run(self, bus, make_action, journal):
        chained, start_next = self._chain(bus, make_action)

        run = bus.start_action("a.one", start_next)

        assert _ran(journal) == ["a.one", "c.next"]
        assert run.status == RunStatus.SUCCEEDED
        [inner] = chained
        assert inner.status == RunStatus.DRAINED
        assert inner.run_id != run.run_id
        assert not bus.running

    def test_outer_run_keeps_its_log_context(self, bus, make_action, capsys):
        configure_logging(level="INFO", json_format=True)
        chained, start_next = self._chain(bus, make_action)

        run = bus.start_action("a.one", start_next)

        records = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
        inner, outer = [r for r in records if r["event"] == "run.complete"]
        assert inner["run_id"] == chained[0].run_id
        assert outer["run_id"] == run.run_id
        assert outer["start_action"] == "a.one"
