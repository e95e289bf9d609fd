"""
Notification Publishing.

Events are handed to the notification collaborator only after the unit of
work that produced them has committed. Publishing is best effort: a failed
delivery is logged and never rolls back or fails the request.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Protocol

import redis

from shared.config.logging import get_logger
from shared.config.settings import settings
from .event_schema import Event
from .event_types import MAX_EVENT_SIZE, NOTIFICATIONS_CHANNEL

logger = get_logger(__name__)


def _validate_event_size(event_json: str, event_type: str) -> None:
    """Raise ValueError when the serialized event exceeds MAX_EVENT_SIZE."""
    size = len(event_json.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(
            f"Event {event_type} exceeds max size: {size} > {MAX_EVENT_SIZE} bytes"
        )


class NotificationPublisher(Protocol):
    """Transport for notification events."""

    def publish(self, event: Event) -> None:
        ...


class RedisNotificationPublisher:
    """Publishes events as JSON on a Redis pub/sub channel."""

    def __init__(self, client: redis.Redis, channel: str = NOTIFICATIONS_CHANNEL) -> None:
        self._client = client
        self._channel = channel

    def publish(self, event: Event) -> None:
        event_json = event.to_json()
        _validate_event_size(event_json, event.type)
        receivers = self._client.publish(self._channel, event_json)
        logger.debug(
            "Event published",
            channel=self._channel,
            event_type=event.type,
            receivers=receivers,
        )


class InMemoryNotificationPublisher:
    """
    Keeps published events in a list.

    Used in development and tests; events are lost on restart.
    """

    def __init__(self) -> None:
        self.events: list[Event] = []

    def publish(self, event: Event) -> None:
        _validate_event_size(event.to_json(), event.type)
        self.events.append(event)

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


def emit_events(publisher: NotificationPublisher, events: Iterable[Event]) -> int:
    """
    Deliver events after commit.

    Failures are logged and swallowed; the transition that produced the
    events has already committed.

    Returns:
        Number of events delivered.
    """
    delivered = 0
    for event in events:
        try:
            publisher.publish(event)
            delivered += 1
        except (redis.RedisError, ValueError, OSError) as e:
            logger.error(
                "Failed to publish notification",
                event_type=event.type,
                order_id=event.order_id,
                error=str(e),
            )
    return delivered


@lru_cache
def get_notification_publisher() -> NotificationPublisher:
    """
    FastAPI dependency returning the configured publisher.

    Cached so the in-memory backend keeps its events for the process lifetime.
    """
    if settings.notifications_backend == "memory":
        logger.info("Using in-memory notification publisher")
        return InMemoryNotificationPublisher()

    # Import here so the pool is only created when Redis is configured
    from .redis_pool import get_redis_sync_client

    return RedisNotificationPublisher(get_redis_sync_client(), settings.notifications_channel)
