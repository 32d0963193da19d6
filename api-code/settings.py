from __future__ import annotations

import os
from functools import lru_cache
from typing import NamedTuple, Optional

from pydantic import BaseModel, Field


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing at startup."""


class TwitterCredentials(NamedTuple):
    app_key: str
    app_secret: str
    access_token: str
    access_secret: str


class Settings(BaseModel):
    """Runtime configuration resolved from environment variables."""

    openai_api_key: Optional[str] = Field(
        default=None, alias="OPENAI_API_KEY", description="Completion provider API key"
    )
    openai_api_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        alias="OPENAI_API_URL",
        description="Chat completions endpoint.",
    )
    openai_timeout_seconds: float = Field(
        default=30.0,
        alias="OPENAI_TIMEOUT_SECONDS",
        description="Timeout applied to each completion call.",
    )
    twitter_app_key: Optional[str] = Field(default=None, alias="TWITTER_APP_KEY")
    twitter_app_secret: Optional[str] = Field(default=None, alias="TWITTER_APP_SECRET")
    twitter_access_token: Optional[str] = Field(default=None, alias="TWITTER_ACCESS_TOKEN")
    twitter_access_secret: Optional[str] = Field(default=None, alias="TWITTER_ACCESS_SECRET")
    poster_enabled: bool = Field(
        default=True,
        alias="POSTER_ENABLED",
        description="When false, the scheduled poster is never started.",
    )
    post_interval_seconds: float = Field(
        default=3600.0,
        alias="POST_INTERVAL_SECONDS",
        description="Delay between the end of one scheduled post and the next.",
    )
    cors_origin: str = Field(
        default="https://waifuai.live",
        alias="CORS_ORIGIN",
        description="Only browser origin allowed to call the API.",
    )
    rate_limit: str = Field(
        default="10/minute",
        alias="RATE_LIMIT",
        description="Per-IP request limit shared by all routes (slowapi syntax).",
    )
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    memory_log_interval_seconds: float = Field(
        default=5.0,
        alias="MEMORY_LOG_INTERVAL_SECONDS",
        description="Interval between memory usage snapshots. 0 disables them.",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_env(cls) -> "Settings":
        return cls.model_validate(os.environ)

    def require_openai_api_key(self) -> str:
        key = (self.openai_api_key or "").strip()
        if not key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is not set.")
        return key

    def twitter_credentials(self) -> Optional[TwitterCredentials]:
        values = (
            self.twitter_app_key,
            self.twitter_app_secret,
            self.twitter_access_token,
            self.twitter_access_secret,
        )
        if not all(value and value.strip() for value in values):
            return None
        return TwitterCredentials(*(value.strip() for value in values))  # type: ignore[union-attr]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance built from environment variables."""
    return Settings.from_env()
