"""Observability setup: Sentry as the trace backend, OpenTelemetry for spans.

This module wires the two SDKs together the same way in both processes:

- Sentry is initialized with ``instrumenter="otel"`` so it does not create
  spans of its own; OpenTelemetry spans are forwarded to it through
  ``SentrySpanProcessor``.
- ``SentryPropagator`` is installed as the global text map propagator, so
  trace context travels in ``sentry-trace`` and ``baggage`` headers.
- httpx is instrumented, so every outbound request made with an
  ``httpx.AsyncClient`` becomes a child span and carries those headers.

IMPORTANT: Call configure_observability() once at process startup, before any
``httpx`` client is created, so outbound requests are instrumented.

PII guidance:
- NEVER put raw credentials or cookies in span attributes; redact headers
  with ``StructuredLogger.sanitize`` first
- Without SENTRY_DSN the Sentry client stays inactive: spans are still created
  locally and error reports are dropped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

import sentry_sdk
from opentelemetry import trace
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from sentry_sdk.integrations.opentelemetry import (
    SentryPropagator,
    SentrySpanProcessor,
)

from core.config import get_settings
from core.error_reporting import SentryErrorReporter


logger = logging.getLogger(__name__)

# Span attribute carrying the span category (Sentry's "op")
SPAN_OP_ATTRIBUTE = "sentry.op"

# Modules reported as in-app frames in Sentry stack traces
IN_APP_MODULES = ["api", "core", "dependencies", "services", "client", "main"]


@dataclass(frozen=True)
class Telemetry:
    """Process-wide telemetry handles created by configure_observability()."""

    tracer_provider: TracerProvider
    reporter: SentryErrorReporter

    def get_tracer(self, name: str) -> trace.Tracer:
        return self.tracer_provider.get_tracer(name)

    def flush(self, timeout_seconds: float = 2.0) -> None:
        """Export pending spans and send queued error reports."""
        self.tracer_provider.force_flush(int(timeout_seconds * 1000))
        self.reporter.flush(timeout=timeout_seconds)

    def shutdown(self, timeout_seconds: float = 2.0) -> None:
        """Flush, then stop span processing and close the Sentry client."""
        self.flush(timeout_seconds)
        self.tracer_provider.shutdown()
        self.reporter.close(timeout=timeout_seconds)


@lru_cache
def configure_observability(service_name: str) -> Telemetry:
    """Initialize Sentry and OpenTelemetry for this process.

    The result is cached: repeated calls return the same ``Telemetry`` so
    global SDK state is only installed once.

    Args:
        service_name: Value of the ``service.name`` resource attribute.

    Returns:
        The tracer provider and error reporter bound to the configured client.

    Environment Variables:
        SENTRY_DSN: Sentry project DSN (reports are dropped when unset)
        SENTRY_TRACES_SAMPLE_RATE: Fraction of traces to keep (default: 1.0)
        SENTRY_DEBUG: Enable Sentry SDK debug output
        OTEL_CONSOLE_EXPORT: Also print finished spans to stdout
    """
    settings = get_settings()

    if not settings.SENTRY_DSN:
        logger.info(
            "SENTRY_DSN not set; spans stay local and error reports are dropped."
        )

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        debug=settings.SENTRY_DEBUG,
        instrumenter="otel",
        # Errors are reported explicitly through the ErrorReporter
        auto_enabling_integrations=False,
        in_app_include=IN_APP_MODULES,
    )

    tracer_provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: service_name})
    )
    tracer_provider.add_span_processor(SentrySpanProcessor())
    if settings.OTEL_CONSOLE_EXPORT:
        tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    set_global_textmap(SentryPropagator())
    HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)

    logger.info("Telemetry configured for service '%s'", service_name)
    return Telemetry(
        tracer_provider=tracer_provider,
        reporter=SentryErrorReporter(sentry_sdk.get_client()),
    )


def get_tracer(name: str) -> trace.Tracer:
    """Get an OpenTelemetry tracer for custom instrumentation.

    Before configure_observability() runs this returns a proxy tracer that
    starts emitting real spans once the global provider is installed.

    Example:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("validate_params") as span:
            span.set_attribute("message.length", len(message))
    """
    return trace.get_tracer(name)
