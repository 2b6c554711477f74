"""
Shared pytest fixtures and configuration for actionbus tests.

This module provides:
- Auto-marking of unit / integration tests by location
- Isolation of global state (settings cache, structlog config, handler journal)
- A ready-to-use Bus plus factories for actions

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(bus, make_action):
        bus.add_action(make_action("orders", "create"))
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure actionbus package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from _support.handlers import JOURNAL, recorder
from actionbus.core.logging import clear_context, reset_logging
from actionbus.core.settings import BusSettings, clear_settings_cache
from actionbus.orchestration import Action, Bus


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Global State Cleanup
# =============================================================================


@pytest.fixture(autouse=True)
def clean_global_state() -> Generator[None, None, None]:
    """
    Reset process-wide state before and after each test.

    The handler journal, the settings cache and the structlog configuration
    are module globals; leaving them dirty would couple tests together.
    """
    JOURNAL.clear()
    clear_settings_cache()
    yield
    JOURNAL.clear()
    clear_settings_cache()
    clear_context()
    reset_logging()


# =============================================================================
# Bus Fixtures
# =============================================================================


@pytest.fixture
def settings() -> BusSettings:
    """Settings independent of the environment the tests run in."""
    return BusSettings(validate_on_start=True, validation_cache_path=None)


@pytest.fixture
def bus(settings: BusSettings) -> Bus:
    return Bus(settings)


@pytest.fixture
def make_action():
    """
    Factory fixture for Actions backed by recording handlers.

    Usage:
        def test_something(make_action):
            action = make_action("orders", "create", required={"users.load"})
    """

    def _make_action(
        service_id: str,
        name: str,
        *,
        status: str = "SUCCESS",
        compensable: bool = False,
        fail: bool = False,
        **kwargs,
    ) -> Action:
        handler = kwargs.pop(
            "handler",
            recorder(f"{service_id}.{name}", status=status, compensable=compensable, fail=fail),
        )
        return Action(service_id, name, handler, **kwargs)

    return _make_action


@pytest.fixture
def journal() -> list[tuple[str, str]]:
    """Calls recorded by the support handlers, as ``(kind, full_name)`` tuples."""
    return JOURNAL
