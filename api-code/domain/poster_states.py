from __future__ import annotations

from enum import Enum


class PosterState(str, Enum):
    IDLE = "idle"
    POSTING = "posting"


class TickOutcome(str, Enum):
    POSTED = "posted"
    SKIPPED = "skipped"
    FAILED = "failed"
