from .post import (
    POST_TIMESTAMP_FORMAT,
    TWEET_MAX_LENGTH,
    PostRecord,
    TickResult,
    compose_post,
    utc_now,
)

__all__ = [
    "POST_TIMESTAMP_FORMAT",
    "TWEET_MAX_LENGTH",
    "PostRecord",
    "TickResult",
    "compose_post",
    "utc_now",
]
