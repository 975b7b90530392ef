from __future__ import annotations

import logging

from tableside.application.ports.publisher import EventPublisher
from tableside.infrastructure.messaging.redis_client import get_redis_client, redis_configured

logger = logging.getLogger(__name__)


class RedisEventPublisher(EventPublisher):
    def __init__(self, timeout_seconds: float = 1.0) -> None:
        self._timeout_seconds = timeout_seconds

    def publish(self, channel: str, message: str) -> None:
        client = get_redis_client(timeout_seconds=self._timeout_seconds)
        receivers = client.publish(channel, message)
        logger.debug("change_published", extra={"channel": channel, "receivers": receivers})


class NullEventPublisher(EventPublisher):
    """Used when no REDIS_URL is configured; dashboards rely on polling."""

    def publish(self, channel: str, message: str) -> None:
        logger.debug("change_publish_skipped", extra={"channel": channel})


def build_event_publisher() -> EventPublisher:
    if redis_configured():
        return RedisEventPublisher()
    return NullEventPublisher()
