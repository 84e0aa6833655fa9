from fastapi import APIRouter, Request

from dependencies.telemetry import ErrorReporterDep
from schemas.hello import HelloParams, HelloResponse
from services.hello import handle_hello


router = APIRouter()


@router.get("/hello", response_model=HelloResponse)
async def hello(
    request: Request, reporter: ErrorReporterDep, message: str = ""
) -> HelloResponse:
    """Greet the caller; an empty ``message`` is rejected with 400."""
    return await handle_hello(HelloParams(message=message), request.headers, reporter)
