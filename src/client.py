"""Run one traced fetch sequence against the local hello server."""

import asyncio
import logging
from typing import Any

import httpx

from core.config import get_settings
from core.error_handler import setup_logging
from core.observability import configure_observability
from services.orchestrator import RequestOrchestrator


logger = logging.getLogger(__name__)


async def main() -> Any | None:
    settings = get_settings()
    setup_logging()
    telemetry = configure_observability(f"{settings.APP_NAME}-client")

    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            orchestrator = RequestOrchestrator(
                client,
                telemetry.reporter,
                telemetry.get_tracer(__name__),
                external_urls=settings.EXTERNAL_URLS,
                local_url=settings.LOCAL_SERVICE_URL,
            )
            data = await orchestrator.run()
    finally:
        telemetry.shutdown()

    logger.info("Fetch data outcome: %s", data)
    return data


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
