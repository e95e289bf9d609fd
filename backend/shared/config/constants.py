"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import Roles, OrderStatus, ItemStatus

    if status == OrderStatus.PENDING:
        ...
"""

from typing import Final


# =============================================================================
# Actor Roles (supplied by the identity collaborator)
# =============================================================================


class Roles:
    """Actor role constants."""

    ADMIN: Final[str] = "ADMIN"
    MANAGER: Final[str] = "MANAGER"
    SERVER: Final[str] = "SERVER"
    COUNTER: Final[str] = "COUNTER"
    KITCHEN: Final[str] = "KITCHEN"
    PAYMENT: Final[str] = "PAYMENT"  # Payment collaborator service identity

    ALL: Final[list[str]] = [ADMIN, MANAGER, SERVER, COUNTER, KITCHEN, PAYMENT]


# Role groups for common access patterns
MANAGEMENT_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER})
FRONT_OF_HOUSE_ROLES: Final[frozenset[str]] = frozenset(
    {Roles.ADMIN, Roles.MANAGER, Roles.SERVER, Roles.COUNTER}
)
KITCHEN_ACCESS_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER, Roles.KITCHEN})


# =============================================================================
# Order Status Constants
# =============================================================================


class OrderStatus:
    """Order status constants."""

    PENDING: Final[str] = "pending"
    CONFIRMED: Final[str] = "confirmed"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"

    ALL: Final[list[str]] = [PENDING, CONFIRMED, PREPARING, READY, SERVED, COMPLETED, CANCELLED]
    # Only these are ever written to the order row; the rest are derived from items
    STORED: Final[list[str]] = [PENDING, CONFIRMED, COMPLETED, CANCELLED]
    TERMINAL: Final[list[str]] = [COMPLETED, CANCELLED]
    CANCELLABLE: Final[list[str]] = [PENDING, CONFIRMED, PREPARING]
    EDITABLE: Final[list[str]] = [PENDING, CONFIRMED]
    # Kitchen display shows these (derived statuses)
    KITCHEN_VISIBLE: Final[list[str]] = [CONFIRMED, PREPARING, READY]
    ACTIVE: Final[list[str]] = [PENDING, CONFIRMED, PREPARING, READY, SERVED]


class ItemStatus:
    """Order item status constants."""

    PENDING: Final[str] = "pending"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"
    CANCELLED: Final[str] = "cancelled"

    # Forward order used for cascading order-level kitchen transitions
    PROGRESSION: Final[list[str]] = [PENDING, PREPARING, READY, SERVED]
    STARTED: Final[list[str]] = [PREPARING, READY, SERVED]
    # Once an item is here, food may be plated and the order cannot be cancelled
    PLATED: Final[list[str]] = [READY, SERVED]


class OrderType:
    """Order type constants."""

    DINE_IN: Final[str] = "dine_in"
    TAKEOUT: Final[str] = "takeout"
    DELIVERY: Final[str] = "delivery"

    ALL: Final[list[str]] = [DINE_IN, TAKEOUT, DELIVERY]


class HistoryScope:
    """Scope of an order status history row."""

    ORDER: Final[str] = "order"
    ITEM: Final[str] = "item"


# =============================================================================
# Inventory Constants
# =============================================================================


class StockOperation:
    """IngredientHistory operation kinds."""

    ORDER_CONSUMPTION: Final[str] = "order_consumption"
    ORDER_CANCELLATION: Final[str] = "order_cancellation"
    RESTOCK: Final[str] = "restock"
    ADJUSTMENT: Final[str] = "adjustment"
    SPOILAGE: Final[str] = "spoilage"

    ALL: Final[list[str]] = [ORDER_CONSUMPTION, ORDER_CANCELLATION, RESTOCK, ADJUSTMENT, SPOILAGE]
    # Operations staff may apply by hand through the inventory API
    MANUAL: Final[list[str]] = [RESTOCK, ADJUSTMENT, SPOILAGE]


class AvailabilityStatus:
    """Product availability derived from ingredient stock."""

    AVAILABLE: Final[str] = "available"
    LOW_STOCK: Final[str] = "low_stock"
    OUT_OF_STOCK: Final[str] = "out_of_stock"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Validation limits for requests."""

    MAX_ITEMS_PER_ORDER: Final[int] = 100
    MAX_ITEM_QUANTITY: Final[int] = 99
    MAX_INSTRUCTIONS_LENGTH: Final[int] = 500
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
    HISTORY_PAGE_SIZE: Final[int] = 100
    ORDER_NUMBER_ATTEMPTS: Final[int] = 3
