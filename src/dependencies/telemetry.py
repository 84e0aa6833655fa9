"""Request dependencies exposing the process telemetry handles."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from core.error_reporting import ErrorReporter


def get_error_reporter(request: Request) -> ErrorReporter:
    """Return the reporter installed on ``app.state`` during startup."""
    reporter: ErrorReporter | None = getattr(
        request.app.state, "error_reporter", None
    )
    if reporter is None:
        raise RuntimeError("Error reporter not configured; is the lifespan running?")
    return reporter


ErrorReporterDep = Annotated[ErrorReporter, Depends(get_error_reporter)]
