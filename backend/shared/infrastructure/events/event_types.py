"""
Event Type Constants.

Defines the notification event types published to the notification
collaborator after a unit of work commits.
"""

from shared.config.settings import settings

# =============================================================================
# Order lifecycle events
# Flow: pending → confirmed → preparing → ready → served → completed
# =============================================================================

ORDER_CONFIRMED = "order_confirmed"  # Stock reserved; kitchen can start
ORDER_READY = "order_ready"          # Every item ready or served

# =============================================================================
# Inventory events
# =============================================================================

LOW_STOCK = "low_stock"  # Ingredient at or below its minimum after a change

# =============================================================================
# Payment events
# =============================================================================

PAYMENT_COMPLETED = "payment_completed"  # Payment collaborator closed the order

ALL_EVENT_TYPES = frozenset({ORDER_CONFIRMED, ORDER_READY, LOW_STOCK, PAYMENT_COMPLETED})

# =============================================================================
# Channel and size limits
# =============================================================================

NOTIFICATIONS_CHANNEL = settings.notifications_channel

# Maximum serialized event size in bytes
MAX_EVENT_SIZE = 64 * 1024
