"""Error reporting backed by an explicitly configured Sentry client.

Callers receive an ``ErrorReporter`` instead of reaching for the global
``sentry_sdk.capture_exception`` so that the orchestration and route code can
be exercised with a recording fake in tests.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

import sentry_sdk
from sentry_sdk.client import BaseClient


logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    """Protocol for sending failure descriptions to an error tracker."""

    def capture_exception(
        self, error: BaseException, *, tags: Mapping[str, str] | None = None
    ) -> str | None:
        """Report ``error`` and return the event id, if one was recorded."""
        ...


class SentryErrorReporter:
    """Report exceptions through a specific Sentry client."""

    def __init__(self, client: BaseClient) -> None:
        self._client = client

    def capture_exception(
        self, error: BaseException, *, tags: Mapping[str, str] | None = None
    ) -> str | None:
        with sentry_sdk.new_scope() as scope:
            scope.set_client(self._client)
            for key, value in (tags or {}).items():
                scope.set_tag(key, value)
            event_id = scope.capture_exception(error)

        if event_id is None:
            logger.debug(
                "Error report for %s was not recorded", error.__class__.__name__
            )
        return event_id

    def flush(self, timeout: float = 2.0) -> None:
        self._client.flush(timeout=timeout)

    def close(self, timeout: float = 2.0) -> None:
        self._client.close(timeout=timeout)
