from fastapi import APIRouter

from .health import router as health_router
from .hello import router as hello_router


api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(hello_router, tags=["hello"])
