# Annotations stay eager: FastAPI reads them through the slowapi wrapper.
import logging
from typing import Callable

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from schemas import (
    MISSING_FIELDS_ERROR,
    UPSTREAM_FAILURE_ERROR,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
)
from services import OpenAIChatService, UpstreamError


logger = logging.getLogger("waifu-backend.chat")


def build_chat_router(chat_service: OpenAIChatService, rate_limit: Callable) -> APIRouter:
    """Create the chat router wired to the provided chat service."""
    router = APIRouter(prefix="/api", tags=["chat"])

    @router.post(
        "/chat",
        response_model=ChatResponse,
        responses={
            status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
            status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
        },
    )
    @rate_limit
    async def chat_endpoint(request: Request, payload: ChatRequest):
        missing = payload.missing_fields()
        if missing:
            logger.info("Rejected chat request, missing fields: %s", ", ".join(missing))
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=ErrorResponse(error=MISSING_FIELDS_ERROR).model_dump(),
            )

        logger.info(
            "Chat request for waifu=%s (message_chars=%d, prompt_chars=%d)",
            payload.waifu,
            len(payload.message or ""),
            len(payload.prompt or ""),
        )
        try:
            reply = await chat_service.generate_reply(
                prompt=payload.prompt or "",
                message=payload.message or "",
                waifu=payload.waifu,
            )
        except UpstreamError:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=ErrorResponse(error=UPSTREAM_FAILURE_ERROR).model_dump(),
            )

        return ChatResponse(response=reply)

    return router
