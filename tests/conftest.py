"""Pytest configuration and fixtures."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from stepflow.config import reset_settings
from stepflow.orchestration import OrchestrationContext, OrchestrationListener


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Run every test with the test settings profile."""
    monkeypatch.setenv("STEPFLOW_ENV", "test")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def context():
    """Provide an empty orchestration context."""
    return OrchestrationContext.empty()


@pytest.fixture
def executor():
    """Provide a caller-owned thread pool."""
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


class RecordingListener(OrchestrationListener):
    """Listener recording hook calls as ``hook:step`` strings."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: list[str] = []
        self.metadata = []

    def before_step(self, step_name, context):
        with self._lock:
            self.events.append(f"before:{step_name}")

    def after_step(self, step_name, context, metadata):
        with self._lock:
            self.events.append(f"after:{step_name}")
            self.metadata.append(metadata)

    def on_failure(self, step_name, error, context, metadata):
        with self._lock:
            self.events.append(f"failure:{step_name}")
            self.metadata.append(metadata)


class ExplodingListener(OrchestrationListener):
    """Listener raising from every hook."""

    def before_step(self, step_name, context):
        raise RuntimeError("before failure")

    def after_step(self, step_name, context, metadata):
        raise RuntimeError("after failure")

    def on_failure(self, step_name, error, context, metadata):
        raise RuntimeError("failure failure")


@pytest.fixture
def recording_listener():
    return RecordingListener()


@pytest.fixture
def exploding_listener():
    return ExplodingListener()
