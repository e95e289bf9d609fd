"""
Notification events published after a unit of work commits.

Modules:
- event_types.py: Event type constants and channel
- event_schema.py: Event dataclass with validation
- domain_events.py: Builders for order and stock events
- publisher.py: Publisher protocol, Redis and in-memory backends, emit_events
- redis_pool.py: Sync Redis connection pool
"""

from .event_types import (
    ORDER_CONFIRMED,
    ORDER_READY,
    LOW_STOCK,
    PAYMENT_COMPLETED,
    ALL_EVENT_TYPES,
    NOTIFICATIONS_CHANNEL,
    MAX_EVENT_SIZE,
)
from .event_schema import Event
from .domain_events import order_event, low_stock_event
from .publisher import (
    NotificationPublisher,
    RedisNotificationPublisher,
    InMemoryNotificationPublisher,
    emit_events,
    get_notification_publisher,
)
from .redis_pool import get_redis_sync_client, close_redis_sync_client

__all__ = [
    # Event types
    "ORDER_CONFIRMED",
    "ORDER_READY",
    "LOW_STOCK",
    "PAYMENT_COMPLETED",
    "ALL_EVENT_TYPES",
    "NOTIFICATIONS_CHANNEL",
    "MAX_EVENT_SIZE",
    # Schema
    "Event",
    "order_event",
    "low_stock_event",
    # Publishing
    "NotificationPublisher",
    "RedisNotificationPublisher",
    "InMemoryNotificationPublisher",
    "emit_events",
    "get_notification_publisher",
    # Redis
    "get_redis_sync_client",
    "close_redis_sync_client",
]
