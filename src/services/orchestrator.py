"""Client-side request orchestration inside a single traced span."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from opentelemetry.trace import Tracer

from core.config import DEFAULT_EXTERNAL_URLS
from core.error_reporting import ErrorReporter
from core.exceptions import RequestFailedError
from core.observability import SPAN_OP_ATTRIBUTE


logger = logging.getLogger(__name__)

DEFAULT_LOCAL_URL = "http://localhost:3001/hello"
FETCH_SPAN_NAME = "Fetch data"
FETCH_SPAN_OP = "custom"


class RequestOrchestrator:
    """Issue the fixed call sequence and return the local service's payload.

    The three external calls are fire-and-forget: their responses are never
    inspected. Only the final call to the local service decides the outcome,
    and its failures are reported and replaced with ``None``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        reporter: ErrorReporter,
        tracer: Tracer,
        *,
        external_urls: Sequence[str] = tuple(DEFAULT_EXTERNAL_URLS),
        local_url: str = DEFAULT_LOCAL_URL,
        span_name: str = FETCH_SPAN_NAME,
        span_op: str = FETCH_SPAN_OP,
    ) -> None:
        self._client = client
        self._reporter = reporter
        self._tracer = tracer
        self._external_urls = tuple(external_urls)
        self._local_url = local_url
        self._span_name = span_name
        self._span_op = span_op

    async def run(self) -> Any | None:
        """Run the sequence once; returns the decoded body or ``None``."""
        with self._tracer.start_as_current_span(
            self._span_name, attributes={SPAN_OP_ATTRIBUTE: self._span_op}
        ):
            for url in self._external_urls:
                await self._fire_and_forget(url)
            return await self._fetch_local()

    async def _fire_and_forget(self, url: str) -> None:
        try:
            await self._client.get(url)
        except httpx.HTTPError as exc:
            # Outcome is discarded either way; keep the gap visible in logs.
            logger.warning("Ignoring failed request to %s: %s", url, exc)

    async def _fetch_local(self) -> Any | None:
        try:
            response = await self._client.get(self._local_url)
            if not response.is_success:
                error = RequestFailedError(response.status_code, response.reason_phrase)
                self._reporter.capture_exception(
                    error, tags={"http.status_code": str(response.status_code)}
                )
                logger.error(
                    "Request failed with status: %s %s",
                    response.status_code,
                    response.reason_phrase,
                )
                return None
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            # Transport failures and undecodable bodies
            logger.error("Error making request: %s", exc)
            self._reporter.capture_exception(exc)
            return None
