from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


MISSING_FIELDS_ERROR = "Missing required fields"
UPSTREAM_FAILURE_ERROR = "Something went wrong"


class ChatRequest(BaseModel):
    """Chat payload. Only presence of each field is checked."""

    waifu: Optional[str] = Field(default=None, description="Character name, used for logging only.")
    message: Optional[str] = Field(default=None, description="User message for the model.")
    prompt: Optional[str] = Field(default=None, description="System prompt describing the character.")

    model_config = {"coerce_numbers_to_str": True}

    def missing_fields(self) -> List[str]:
        return [
            name
            for name in ("waifu", "message", "prompt")
            if not getattr(self, name)
        ]


class ChatResponse(BaseModel):
    response: str = Field(..., description="Completion text returned by the model.")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable error summary.")
