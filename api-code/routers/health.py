# Annotations stay eager: FastAPI reads them through the slowapi wrapper.
from typing import Callable

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from schemas import HealthResponse


ROOT_BANNER = "Waifu Backend is running!"


def build_health_router(rate_limit: Callable) -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    @rate_limit
    async def healthcheck(request: Request) -> HealthResponse:
        return HealthResponse(status="OK")

    @router.get("/", response_class=PlainTextResponse)
    @rate_limit
    async def root(request: Request) -> str:
        return ROOT_BANNER

    return router
