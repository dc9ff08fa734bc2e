"""Global pytest configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from switchboard.lease.store import InMemoryLeaseStore


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class StaticHealthCheck:
    """Health check with a fixed answer."""

    def __init__(self, healthy: bool) -> None:
        self.healthy = healthy
        self.calls = 0

    async def is_healthy(self) -> bool:
        self.calls += 1
        return self.healthy


@pytest.fixture
def store() -> InMemoryLeaseStore:
    """Create an empty in-memory lease store."""
    return InMemoryLeaseStore()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    """Create a sleep that returns immediately."""
    return RecordingSleep()


@pytest.fixture
def healthy() -> StaticHealthCheck:
    """Create a health check that always passes."""
    return StaticHealthCheck(True)


@pytest.fixture
def unhealthy() -> StaticHealthCheck:
    """Create a health check that always fails."""
    return StaticHealthCheck(False)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo handler changes made by configure_logging during a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
