from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from lifecycle import install_loop_exception_handler, report_task_failure
from routers import build_chat_router, build_health_router
from schemas import MISSING_FIELDS_ERROR, UPSTREAM_FAILURE_ERROR, ErrorResponse
from services import (
    MemoryMonitor,
    OpenAIChatService,
    ScheduledPoster,
    build_memory_monitor,
    build_scheduled_poster,
)
from settings import Settings, get_settings


logger = logging.getLogger("waifu-backend")
http_logger = logging.getLogger("waifu-backend.http")


def create_app(
    settings: Optional[Settings] = None,
    *,
    chat_service: Optional[OpenAIChatService] = None,
    poster: Optional[ScheduledPoster] = None,
    memory_monitor: Optional[MemoryMonitor] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Raises ``ConfigurationError`` when no chat service is injected and the
    completion provider key is missing, before anything else is created.
    """
    settings = settings or get_settings()
    if chat_service is None:
        chat_service = OpenAIChatService(
            settings.require_openai_api_key(),
            api_url=settings.openai_api_url,
            timeout=settings.openai_timeout_seconds,
        )
    if poster is None:
        poster = build_scheduled_poster(settings)
    if memory_monitor is None:
        memory_monitor = build_memory_monitor(settings.memory_log_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        install_loop_exception_handler()
        logger.info("Starting the Waifu Backend on %s:%s", settings.host, settings.port)
        if poster is not None:
            poster.start().add_done_callback(report_task_failure)
        if memory_monitor is not None:
            memory_monitor.start().add_done_callback(report_task_failure)
        try:
            yield
        finally:
            logger.info("Shutting down gracefully...")
            if poster is not None:
                await poster.stop()
            if memory_monitor is not None:
                await memory_monitor.stop()
            await chat_service.aclose()
            logger.info("Shutdown complete.")

    app = FastAPI(
        title="Waifu Backend",
        version="0.1.0",
        description="Chat relay to the completion provider plus a scheduled X poster.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.chat_service = chat_service
    app.state.poster = poster
    app.state.memory_monitor = memory_monitor

    limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    # one "global" scope: every route draws from the same per-client counter
    rate_limit = limiter.shared_limit(settings.rate_limit, scope="global")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        http_logger.info("Incoming %s %s from %s", request.method, request.url.path, client)
        response = await call_next(request)
        http_logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        http_logger.info("Invalid request body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error=MISSING_FIELDS_ERROR).model_dump(),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=UPSTREAM_FAILURE_ERROR).model_dump(),
        )

    app.include_router(build_health_router(rate_limit))
    app.include_router(build_chat_router(chat_service, rate_limit))

    return app
