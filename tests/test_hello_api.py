"""Tests for the traced hello endpoint."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from opentelemetry.propagate import get_global_textmap, set_global_textmap
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)
from opentelemetry.trace import SpanKind, StatusCode
from sentry_sdk.integrations.opentelemetry import SentryPropagator

from core.exceptions import InvalidInputError, RequestFailedError


TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
PARENT_SPAN_ID = "00f067aa0ba902b7"


@pytest.fixture
def spans(
    monkeypatch: pytest.MonkeyPatch,
    tracer_provider: TracerProvider,
    span_exporter: InMemorySpanExporter,
) -> InMemorySpanExporter:
    """Route the hello service's spans to the in-memory exporter."""
    monkeypatch.setattr(
        "services.hello.tracer", tracer_provider.get_tracer("services.hello")
    )
    return span_exporter


@pytest.fixture
def sentry_propagation() -> Generator[None, None, None]:
    """Read trace context from sentry-trace/baggage, as the running server does."""
    previous = get_global_textmap()
    set_global_textmap(SentryPropagator())
    yield
    set_global_textmap(previous)


class TestHello:
    def test_greets_non_empty_message(self, client: TestClient, reporter) -> None:
        response = client.get("/hello", params={"message": "hi"})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Hello from otel-distributed! You sent: hi"
        }
        assert reporter.reports == []

    def test_empty_message_rejected_and_reported(
        self, client: TestClient, reporter
    ) -> None:
        response = client.get("/hello")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid input: Message cannot be empty"}
        assert len(reporter.errors) == 1
        assert isinstance(reporter.errors[0], InvalidInputError)
        assert reporter.errors[0].detail == "Message cannot be empty"

    def test_unexpected_error_returns_envelope_and_reports(
        self, client: TestClient, reporter
    ) -> None:
        with patch(
            "api.hello.handle_hello", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            response = client.get("/hello", params={"message": "hi"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "An internal error occurred"
        assert body["error"]["type"] == "internal_server_error"
        assert body["error"]["exception_type"] == "RuntimeError"
        assert "correlation_id" in body["error"]
        assert [type(e) for e in reporter.errors] == [RuntimeError]

    def test_domain_error_from_handler_is_internal_error(
        self, client: TestClient, reporter
    ) -> None:
        error = RequestFailedError(502, "Bad Gateway")
        with patch("api.hello.handle_hello", AsyncMock(side_effect=error)):
            response = client.get("/hello", params={"message": "hi"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["type"] == "internal_server_error"
        assert body["error"]["exception_type"] == "RequestFailedError"
        assert body["error"]["details"] == {
            "error": "HTTP error! status: 502 Bad Gateway"
        }
        assert reporter.errors == [error]


class TestHelloSpans:
    def test_records_server_and_child_spans(
        self, client: TestClient, spans: InMemorySpanExporter
    ) -> None:
        client.get("/hello", params={"message": "hi"})

        finished = {span.name: span for span in spans.get_finished_spans()}
        assert set(finished) == {"handle_hello", "validate_params", "simulate_work"}

        server = finished["handle_hello"]
        assert server.kind == SpanKind.SERVER
        assert finished["simulate_work"].status.status_code == StatusCode.OK
        for child in ("validate_params", "simulate_work"):
            assert finished[child].parent.span_id == server.context.span_id

    def test_validation_span_marked_as_error(
        self, client: TestClient, spans: InMemorySpanExporter
    ) -> None:
        client.get("/hello", params={"message": ""})

        finished = {span.name: span for span in spans.get_finished_spans()}
        assert "simulate_work" not in finished
        validation = finished["validate_params"]
        assert validation.status.status_code == StatusCode.ERROR
        assert validation.status.description == "Message cannot be empty"

    def test_continues_incoming_trace(
        self, client: TestClient, spans: InMemorySpanExporter
    ) -> None:
        client.get(
            "/hello",
            params={"message": "hi"},
            headers={"traceparent": f"00-{TRACE_ID}-{PARENT_SPAN_ID}-01"},
        )

        server = next(
            span for span in spans.get_finished_spans() if span.name == "handle_hello"
        )
        assert format(server.context.trace_id, "032x") == TRACE_ID
        assert format(server.parent.span_id, "016x") == PARENT_SPAN_ID

    def test_continues_trace_from_sentry_headers(
        self, client: TestClient, spans: InMemorySpanExporter, sentry_propagation
    ) -> None:
        client.get(
            "/hello",
            params={"message": "hi"},
            headers={
                "sentry-trace": f"{TRACE_ID}-{PARENT_SPAN_ID}-1",
                "baggage": (
                    f"sentry-trace_id={TRACE_ID},"
                    "sentry-environment=test,sentry-sample_rate=1.0"
                ),
            },
        )

        server = next(
            span for span in spans.get_finished_spans() if span.name == "handle_hello"
        )
        assert format(server.context.trace_id, "032x") == TRACE_ID
        assert server.parent.is_remote
        assert format(server.parent.span_id, "016x") == PARENT_SPAN_ID

    def test_failed_validation_leaves_server_span_unset(
        self, client: TestClient, spans: InMemorySpanExporter
    ) -> None:
        client.get("/hello", params={"message": ""})

        server = next(
            span for span in spans.get_finished_spans() if span.name == "handle_hello"
        )
        assert server.status.status_code == StatusCode.UNSET
        assert len(server.events) == 0

    def test_sensitive_headers_redacted_in_attributes(
        self, client: TestClient, spans: InMemorySpanExporter
    ) -> None:
        client.get(
            "/hello",
            params={"message": "hi"},
            headers={"Authorization": "Bearer placeholder_token"},
        )

        server = next(
            span for span in spans.get_finished_spans() if span.name == "handle_hello"
        )
        headers_attr = server.attributes["headers"]
        assert "placeholder_token" not in headers_attr
        assert "[REDACTED]" in headers_attr
        assert "message='hi'" in server.attributes["params"]
