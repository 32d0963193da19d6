from .chat import (
    MISSING_FIELDS_ERROR,
    UPSTREAM_FAILURE_ERROR,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
)
from .health import HealthResponse

__all__ = [
    "MISSING_FIELDS_ERROR",
    "UPSTREAM_FAILURE_ERROR",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "HealthResponse",
]
