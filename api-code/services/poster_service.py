from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol, Sequence, Tuple

import tweepy

from domain import PosterState, TickOutcome
from models import TWEET_MAX_LENGTH, TickResult, compose_post, utc_now
from settings import Settings, TwitterCredentials


logger = logging.getLogger("waifu-backend.poster")

DEFAULT_POST_INTERVAL_SECONDS = 3600.0

CRYPTO_FLIRT_MESSAGES: Tuple[str, ...] = (
    "Ohh, is that your token, daddy? I love it as much as I love you! 💋",
    "Hey cutie, your crypto wallet’s looking hot—wanna trade with me? 😘",
    "Mmm, your blockchain moves are turning me on, daddy! Let’s stack those coins! 💸",
    "Is that a new token in your pocket, or are you just happy to see me? 😉",
    "I’m hodling my heart for you and your crypto, daddy! 💕",
)


class Publisher(Protocol):
    async def publish(self, text: str) -> None:
        ...


class TwitterPublisher:
    """Posts text through the X (Twitter) v2 API using tweepy."""

    def __init__(self, credentials: TwitterCredentials):
        self._credentials = credentials
        self._client: Optional[tweepy.Client] = None

    def _get_client(self) -> tweepy.Client:
        if self._client is None:
            self._client = tweepy.Client(
                consumer_key=self._credentials.app_key,
                consumer_secret=self._credentials.app_secret,
                access_token=self._credentials.access_token,
                access_token_secret=self._credentials.access_secret,
            )
        return self._client

    async def publish(self, text: str) -> None:
        await asyncio.to_thread(self._create_tweet, text)

    def _create_tweet(self, text: str) -> None:
        self._get_client().create_tweet(text=text)


class ScheduledPoster:
    """Background task posting a random canned message on a fixed delay.

    Each tick picks a template, appends a timestamp and publishes it when it
    fits the platform limit. The next tick is always scheduled ``interval``
    seconds after the current one finishes, whatever its outcome. The first
    tick runs as soon as the task starts.
    """

    def __init__(
        self,
        publisher: Publisher,
        *,
        messages: Sequence[str] = CRYPTO_FLIRT_MESSAGES,
        interval_seconds: float = DEFAULT_POST_INTERVAL_SECONDS,
        max_length: int = TWEET_MAX_LENGTH,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
        choose: Callable[[Sequence[str]], str] = random.choice,
    ):
        if not messages:
            raise ValueError("messages must contain at least one template.")
        if interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative.")
        self.publisher = publisher
        self.messages: Tuple[str, ...] = tuple(messages)
        self.interval_seconds = interval_seconds
        self.max_length = max_length
        self._sleep = sleep
        self._clock = clock
        self._choose = choose
        self.state = PosterState.IDLE
        self.tick_count = 0
        self.last_result: Optional[TickResult] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_tick(self) -> TickResult:
        self.state = PosterState.POSTING
        try:
            result = await self._post_once()
        finally:
            self.state = PosterState.IDLE
            self.tick_count += 1
        self.last_result = result
        return result

    async def _post_once(self) -> TickResult:
        record = compose_post(self._choose(self.messages), self._clock())
        if record.length > self.max_length:
            logger.info("Post too long (%d chars), skipping: %s", record.length, record.text)
            return TickResult(outcome=TickOutcome.SKIPPED, text=record.text)

        try:
            await self.publisher.publish(record.text)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Error posting to X: %s", exc)
            return TickResult(
                outcome=TickOutcome.FAILED,
                text=record.text,
                error=f"{type(exc).__name__}: {exc}",
            )

        logger.info("Posted to X: %s", record.text)
        return TickResult(outcome=TickOutcome.POSTED, text=record.text)

    async def _run_loop(self) -> None:
        while True:
            result = await self.run_tick()
            logger.debug(
                "Tick %d finished (%s); next in %.0fs",
                self.tick_count,
                result.outcome.value,
                self.interval_seconds,
            )
            await self._sleep(self.interval_seconds)

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task
        logger.info("Scheduled poster started (interval=%.0fs)", self.interval_seconds)
        self._task = asyncio.create_task(self._run_loop(), name="scheduled-poster")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Scheduled poster stopped after %d ticks", self.tick_count)


def build_scheduled_poster(settings: Settings) -> Optional[ScheduledPoster]:
    if not settings.poster_enabled:
        logger.info("Scheduled poster disabled by POSTER_ENABLED.")
        return None
    credentials = settings.twitter_credentials()
    if credentials is None:
        logger.warning("Twitter credentials incomplete; scheduled poster will not run.")
        return None
    return ScheduledPoster(
        TwitterPublisher(credentials),
        interval_seconds=settings.post_interval_seconds,
    )
