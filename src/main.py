from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.router import api_router
from core.config import get_settings
from core.error_handler import (
    ExceptionNormalizationMiddleware,
    invalid_input_handler,
    setup_logging,
)
from core.exceptions import InvalidInputError
from core.observability import configure_observability


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    telemetry = configure_observability(f"{get_settings().APP_NAME}-server")
    app.state.error_reporter = telemetry.reporter
    try:
        yield
    finally:
        telemetry.shutdown()


app = FastAPI(
    title="otel-distributed server",
    description="Traced hello endpoint for the distributed tracing demo",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(ExceptionNormalizationMiddleware)
app.add_exception_handler(InvalidInputError, invalid_input_handler)

app.include_router(api_router)


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)


if __name__ == "__main__":
    run()
