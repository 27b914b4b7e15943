"""
Test configuration for the Klondike engine.

Provides shared fixtures and registers the test markers.
"""

import pytest

from klondike.controller import GameController
from klondike.core import EventBus, GameSettings, Scoring

from tests.helpers import EventRecorder


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def recorder(event_bus):
    return EventRecorder(event_bus)


@pytest.fixture
def scoring(event_bus):
    return Scoring(event_bus)


@pytest.fixture
def controller(event_bus, scoring):
    """Controller with no game started yet."""
    return GameController(event_bus=event_bus, scoring=scoring)


@pytest.fixture
def undo_settings():
    return GameSettings(difficulty=3, allow_undo=True, seed=7)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line("markers", "fast: tests that finish in milliseconds")
    config.addinivalue_line("markers", "integration: tests that drive a whole game through the controller")
    config.addinivalue_line("markers", "property_test: hypothesis property-based tests")
