from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger("waifu-backend.chat")

OPENAI_MODEL_NAME = "gpt-3.5-turbo"
OPENAI_CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"
MAX_LOGGED_BODY_CHARS = 2000


class UpstreamError(RuntimeError):
    """Raised when the completion provider call fails for any reason."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


def build_completion_payload(prompt: str, message: str, model: str = OPENAI_MODEL_NAME) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": prompt},
            {"role": "user", "content": message},
        ],
    }


class OpenAIChatService:
    """Relays a single chat turn to the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = OPENAI_CHAT_COMPLETIONS_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("api_key must be a non-empty string.")
        self._api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.model_name = OPENAI_MODEL_NAME
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def generate_reply(self, *, prompt: str, message: str, waifu: Optional[str] = None) -> str:
        if not prompt or not message:
            raise ValueError("Prompt and message must be non-empty strings.")

        payload = build_completion_payload(prompt, message, self.model_name)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        logger.info("Calling completion API (model=%s, waifu=%s)", self.model_name, waifu)
        try:
            response = await self._get_client().post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(
                "Completion API request failed: %s: %s", type(exc).__name__, exc, exc_info=True
            )
            raise UpstreamError(f"completion request failed: {type(exc).__name__}") from exc

        if response.is_error:
            logger.error(
                "Completion API returned status=%s body=%s",
                response.status_code,
                response.text[:MAX_LOGGED_BODY_CHARS],
            )
            raise UpstreamError(
                f"completion API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        content = self._extract_content(response)
        logger.info("Completion API call succeeded (status=%s)", response.status_code)
        return content

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        try:
            data: Any = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error(
                "Malformed completion response status=%s body=%s",
                response.status_code,
                response.text[:MAX_LOGGED_BODY_CHARS],
            )
            raise UpstreamError(
                "completion response is malformed", status_code=response.status_code
            ) from exc

        if not isinstance(content, str):
            logger.error("Completion response has no text content: %r", content)
            raise UpstreamError(
                "completion response has no text content", status_code=response.status_code
            )
        return content
