"""Shared test fixtures for pytest.

Environment defaults are set before the app is imported so settings resolve
without an env file and the server skips its simulated latency.
"""

import os
from collections.abc import Generator, Mapping


os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SIMULATE_LATENCY", "false")

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)

from core.config import get_settings
from dependencies.telemetry import get_error_reporter
from main import app


class RecordingReporter:
    """ErrorReporter fake that keeps every captured exception and its tags."""

    def __init__(self) -> None:
        self.reports: list[tuple[BaseException, dict[str, str]]] = []

    def capture_exception(
        self, error: BaseException, *, tags: Mapping[str, str] | None = None
    ) -> str | None:
        self.reports.append((error, dict(tags or {})))
        return f"event-{len(self.reports)}"

    @property
    def errors(self) -> list[BaseException]:
        return [error for error, _ in self.reports]


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    """A local provider; the global one is never installed in tests."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def client(reporter: RecordingReporter) -> Generator[TestClient, None, None]:
    """Test client with the recording reporter in place of Sentry.

    The lifespan is not entered, so no SDK is initialized.
    """
    app.dependency_overrides[get_error_reporter] = lambda: reporter
    app.state.error_reporter = reporter
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
    del app.state.error_reporter
