from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from domain.poster_states import TickOutcome


TWEET_MAX_LENGTH = 280
POST_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PostRecord(BaseModel):
    """Composed text of a scheduled post. Never persisted."""

    text: str = Field(..., description="Template followed by a timestamp.")
    composed_at: datetime = Field(default_factory=utc_now)

    @property
    def length(self) -> int:
        return len(self.text)


class TickResult(BaseModel):
    outcome: TickOutcome = Field(..., description="How the tick ended.")
    text: Optional[str] = Field(default=None, description="Composed post text, if any.")
    error: Optional[str] = Field(default=None, description="Publish failure summary.")
    finished_at: datetime = Field(default_factory=utc_now)


def compose_post(template: str, now: Optional[datetime] = None) -> PostRecord:
    moment = now or utc_now()
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return PostRecord(
        text=f"{template} | {moment.strftime(POST_TIMESTAMP_FORMAT)}",
        composed_at=moment,
    )
