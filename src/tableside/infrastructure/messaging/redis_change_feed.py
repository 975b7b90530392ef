from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from contextlib import suppress

from redis import asyncio as redis_asyncio

from tableside.application.mappers.event_envelope import (
    InvalidChangeEnvelopeError,
    parse_change_event,
)
from tableside.application.ports.change_feed import ChangeCallback, ChangeFeed, ChangeSubscription
from tableside.application.ports.publisher import change_channel
from tableside.config import get_settings
from tableside.domain.order.events import ChangeKind

logger = logging.getLogger(__name__)

INITIAL_BACKOFF_SECONDS = 1.0
MAX_BACKOFF_SECONDS = 5.0


def _decode_value(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class _InertSubscription:
    """Returned when there is no bus to listen on."""

    def __init__(self) -> None:
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def close(self) -> None:
        self._active = False


class _TaskSubscription:
    def __init__(self, task: asyncio.Task[None], channel: str) -> None:
        self._task = task
        self._channel = channel

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def close(self) -> None:
        if self._task.done():
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        logger.info("change_feed_unsubscribed", extra={"channel": self._channel})


class RedisChangeFeed(ChangeFeed):
    def __init__(self, redis_url: str | None = None, poll_timeout_seconds: float = 1.0) -> None:
        self._redis_url = redis_url if redis_url is not None else get_settings().redis_url
        self._poll_timeout_seconds = poll_timeout_seconds

    async def subscribe(
        self,
        table: str,
        kinds: Iterable[ChangeKind],
        callback: ChangeCallback,
    ) -> ChangeSubscription:
        channel = change_channel(table)
        if not self._redis_url:
            logger.warning(
                "change_feed_not_started",
                extra={"channel": channel, "reason": "REDIS_URL missing"},
            )
            return _InertSubscription()

        task = asyncio.create_task(self._listen(channel, frozenset(kinds), callback))
        return _TaskSubscription(task, channel)

    async def _listen(
        self,
        channel: str,
        kinds: frozenset[ChangeKind],
        callback: ChangeCallback,
    ) -> None:
        backoff_seconds = INITIAL_BACKOFF_SECONDS
        while True:
            client: redis_asyncio.Redis | None = None
            pubsub: redis_asyncio.client.PubSub | None = None
            try:
                client = redis_asyncio.from_url(self._redis_url)
                pubsub = client.pubsub()
                await pubsub.subscribe(channel)
                logger.info("change_feed_subscribed", extra={"channel": channel})
                backoff_seconds = INITIAL_BACKOFF_SECONDS

                while True:
                    message = await pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=self._poll_timeout_seconds,
                    )
                    if message is None:
                        await asyncio.sleep(0.05)
                        continue

                    payload = _decode_value(message.get("data"))
                    if not payload:
                        continue

                    try:
                        event = parse_change_event(payload)
                    except InvalidChangeEnvelopeError:
                        logger.warning("change_feed_invalid_envelope", extra={"channel": channel})
                        continue

                    if event.kind not in kinds:
                        continue
                    try:
                        await callback(event)
                    except asyncio.CancelledError:
                        raise
                    except Exception:
                        logger.exception(
                            "change_feed_callback_failed",
                            extra={"channel": channel, "event_type": event.kind.value},
                        )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "change_feed_error",
                    extra={"channel": channel, "backoff_seconds": backoff_seconds},
                )
                await asyncio.sleep(backoff_seconds)
                backoff_seconds = min(backoff_seconds * 2, MAX_BACKOFF_SECONDS)
            finally:
                if pubsub is not None:
                    await pubsub.aclose()
                if client is not None:
                    await client.aclose()
