from __future__ import annotations

import itertools
import sys
from pathlib import Path
from typing import Optional
import unittest

from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parent.parent
API_CODE_PATH = PROJECT_ROOT / "api-code"
if str(API_CODE_PATH) not in sys.path:
    sys.path.insert(0, str(API_CODE_PATH))

from application import create_app
from services import UpstreamError
from settings import ConfigurationError, Settings


API_KEY = "sk-test-secret-key"
VALID_PAYLOAD = {"waifu": "Aiko", "message": "hi", "prompt": "You are Aiko"}


class StubChatService:
    model_name = "stub-model"

    def __init__(self, reply: str = "Hello!", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []
        self.closed = False

    async def generate_reply(self, *, prompt: str, message: str, waifu: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "message": message, "waifu": waifu})
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        self.closed = True


def build_settings(**overrides: object) -> Settings:
    values: dict = {
        "OPENAI_API_KEY": API_KEY,
        "POSTER_ENABLED": False,
        "MEMORY_LOG_INTERVAL_SECONDS": 0,
        "RATE_LIMIT": "1000/minute",
    }
    values.update(overrides)
    return Settings.model_validate(values)


class ChatApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self.chat_service = StubChatService()
        self.app = create_app(build_settings(), chat_service=self.chat_service)  # type: ignore[arg-type]
        self.client = TestClient(self.app)

    def test_example_request_returns_completion(self) -> None:
        response = self.client.post("/api/chat", json=VALID_PAYLOAD)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"response": "Hello!"})
        self.assertEqual(
            self.chat_service.calls,
            [{"prompt": "You are Aiko", "message": "hi", "waifu": "Aiko"}],
        )

    def test_missing_waifu_example(self) -> None:
        response = self.client.post("/api/chat", json={"message": "hi", "prompt": "x"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Missing required fields"})
        self.assertEqual(self.chat_service.calls, [])

    def test_every_missing_subset_is_rejected_without_upstream_call(self) -> None:
        fields = list(VALID_PAYLOAD)
        for size in range(1, len(fields) + 1):
            for missing in itertools.combinations(fields, size):
                with self.subTest(missing=missing):
                    payload = {k: v for k, v in VALID_PAYLOAD.items() if k not in missing}
                    response = self.client.post("/api/chat", json=payload)
                    self.assertEqual(response.status_code, 400)
                    self.assertEqual(response.json(), {"error": "Missing required fields"})
        self.assertEqual(self.chat_service.calls, [])

    def test_empty_or_null_fields_are_missing(self) -> None:
        for value in ("", None):
            with self.subTest(value=value):
                response = self.client.post("/api/chat", json={**VALID_PAYLOAD, "message": value})
                self.assertEqual(response.status_code, 400)
        self.assertEqual(self.chat_service.calls, [])

    def test_non_object_body_is_a_client_error(self) -> None:
        for body in ("not json", "[1, 2, 3]"):
            with self.subTest(body=body):
                response = self.client.post(
                    "/api/chat", content=body, headers={"Content-Type": "application/json"}
                )
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {"error": "Missing required fields"})
        self.assertEqual(self.chat_service.calls, [])

    def test_upstream_failure_returns_generic_error(self) -> None:
        self.chat_service.error = UpstreamError(
            "completion API returned HTTP 401: invalid key", status_code=401
        )

        response = self.client.post("/api/chat", json=VALID_PAYLOAD)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Something went wrong"})
        self.assertNotIn("401", response.text)
        self.assertEqual(len(self.chat_service.calls), 1)

    def test_credential_never_in_response(self) -> None:
        for error in (None, UpstreamError("boom")):
            with self.subTest(error=error):
                self.chat_service.error = error
                response = self.client.post("/api/chat", json=VALID_PAYLOAD)
                self.assertNotIn(API_KEY, response.text)

    def test_health(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "OK"})

    def test_health_independent_of_chat_failures(self) -> None:
        self.chat_service.error = UpstreamError("down")
        self.client.post("/api/chat", json=VALID_PAYLOAD)

        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "OK"})

    def test_root_liveness_text(self) -> None:
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Waifu Backend is running!")
        self.assertTrue(response.headers["content-type"].startswith("text/plain"))

    def test_cors_allows_only_configured_origin(self) -> None:
        allowed = self.client.get("/health", headers={"Origin": "https://waifuai.live"})
        denied = self.client.get("/health", headers={"Origin": "https://evil.example"})

        self.assertEqual(allowed.headers.get("access-control-allow-origin"), "https://waifuai.live")
        self.assertNotIn("access-control-allow-origin", denied.headers)


class RateLimitTest(unittest.TestCase):
    def test_requests_over_the_limit_are_rejected(self) -> None:
        app = create_app(
            build_settings(RATE_LIMIT="10/minute"),
            chat_service=StubChatService(),  # type: ignore[arg-type]
        )
        client = TestClient(app)

        statuses = [client.get("/health").status_code for _ in range(11)]

        self.assertEqual(statuses[:10], [200] * 10)
        self.assertEqual(statuses[10], 429)

    def test_counter_is_shared_across_routes(self) -> None:
        chat_service = StubChatService()
        app = create_app(
            build_settings(RATE_LIMIT="10/minute"),
            chat_service=chat_service,  # type: ignore[arg-type]
        )
        client = TestClient(app)

        statuses = [client.get("/health").status_code for _ in range(5)]
        statuses += [client.post("/api/chat", json=VALID_PAYLOAD).status_code for _ in range(5)]
        over_limit = client.post("/api/chat", json=VALID_PAYLOAD)

        self.assertEqual(statuses, [200] * 10)
        self.assertEqual(over_limit.status_code, 429)
        self.assertIn("Rate limit exceeded", over_limit.json()["error"])
        self.assertEqual(len(chat_service.calls), 5)
        self.assertEqual(client.get("/").status_code, 429)

    def test_limit_can_be_disabled(self) -> None:
        app = create_app(
            build_settings(RATE_LIMIT="2/minute", RATE_LIMIT_ENABLED=False),
            chat_service=StubChatService(),  # type: ignore[arg-type]
        )
        client = TestClient(app)

        statuses = {client.get("/health").status_code for _ in range(5)}
        self.assertEqual(statuses, {200})


class AppConfigurationTest(unittest.TestCase):
    def test_missing_api_key_refuses_to_build(self) -> None:
        with self.assertRaises(ConfigurationError):
            create_app(build_settings(OPENAI_API_KEY=None))

    def test_blank_api_key_refuses_to_build(self) -> None:
        with self.assertRaises(ConfigurationError):
            create_app(build_settings(OPENAI_API_KEY="   "))

    def test_lifespan_closes_chat_service(self) -> None:
        chat_service = StubChatService()
        app = create_app(build_settings(), chat_service=chat_service)  # type: ignore[arg-type]

        with TestClient(app) as client:
            self.assertEqual(client.get("/health").status_code, 200)

        self.assertTrue(chat_service.closed)


if __name__ == "__main__":
    unittest.main()
