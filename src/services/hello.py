"""Server-side handling for the hello endpoint.

Continues the caller's trace from the propagated headers and records the
validation and work phases as child spans.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

from opentelemetry.propagate import extract
from opentelemetry.trace import SpanKind, Status, StatusCode

from core.config import get_settings
from core.error_handler import StructuredLogger
from core.error_reporting import ErrorReporter
from core.exceptions import InvalidInputError
from core.observability import get_tracer
from schemas.hello import HelloParams, HelloResponse


tracer = get_tracer(__name__)
structured_logger = StructuredLogger(__name__)

# Simulated latency per phase, in seconds
HANDLE_DELAY = 0.2
VALIDATE_DELAY = 0.05
WORK_DELAY = 0.2


async def _simulate_work(seconds: float) -> None:
    if get_settings().SIMULATE_LATENCY:
        await asyncio.sleep(seconds)


async def validate_message(params: HelloParams, reporter: ErrorReporter) -> None:
    """Reject an empty message, marking the validation span as failed."""
    # Status is set explicitly below; keep it from being overwritten on raise.
    with tracer.start_as_current_span(
        "validate_params", kind=SpanKind.INTERNAL, set_status_on_exception=False
    ) as span:
        await _simulate_work(VALIDATE_DELAY)

        if not params.message:
            span.set_status(Status(StatusCode.ERROR, "Message cannot be empty"))
            structured_logger.warning("Error: Message cannot be empty")
            error = InvalidInputError("Message cannot be empty")
            reporter.capture_exception(error)
            raise error


async def handle_hello(
    params: HelloParams,
    headers: Mapping[str, str],
    reporter: ErrorReporter,
) -> HelloResponse:
    """Greet the caller inside a server span parented to the incoming trace."""
    parent_context = extract(dict(headers))
    safe_headers = structured_logger.sanitize(dict(headers))

    # Only the failing child span carries the error.
    with tracer.start_as_current_span(
        "handle_hello",
        context=parent_context,
        kind=SpanKind.SERVER,
        record_exception=False,
        set_status_on_exception=False,
        attributes={
            "params": repr(params),
            "headers": repr(safe_headers),
        },
    ):
        structured_logger.info(
            "Hello endpoint hit", params=params.model_dump(), headers=safe_headers
        )
        await _simulate_work(HANDLE_DELAY)

        await validate_message(params, reporter)

        with tracer.start_as_current_span(
            "simulate_work", kind=SpanKind.INTERNAL
        ) as work_span:
            work_span.set_status(Status(StatusCode.OK))
            await _simulate_work(WORK_DELAY)

        app_name = get_settings().APP_NAME
        return HelloResponse(
            message=f"Hello from {app_name}! You sent: {params.message}"
        )
