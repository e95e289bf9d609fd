"""
Domain Services - application layer.

Structure:
    Router (thin controller)
        ↓
    StatusSynchronizer (unit of work, version guard, events)
        ↓
    OrderLifecycle → OrderConsumptionEngine → RecipeCatalog / IngredientLedger
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import StatusSynchronizer

    service = StatusSynchronizer(db, publisher)
    order = service.transition_order(order_id, request, actor)
"""

from .recipe_catalog import RecipeCatalog
from .ingredient_ledger import IngredientLedger, StockChange
from .consumption_engine import (
    OrderConsumptionEngine,
    Reservation,
    ProductAvailability,
    LimitingIngredient,
)
from .order_lifecycle import (
    OrderLifecycle,
    PricingSnapshot,
    Totals,
    ORDER_TRANSITIONS,
    ITEM_TRANSITIONS,
    compute_totals,
    derive_order_status,
    order_status,
)
from .order_feed import OrderStatusFeed, PollingOrderStatusFeed, build_order_output
from .status_sync import StatusSynchronizer

__all__ = [
    "RecipeCatalog",
    "IngredientLedger",
    "StockChange",
    "OrderConsumptionEngine",
    "Reservation",
    "ProductAvailability",
    "LimitingIngredient",
    "OrderLifecycle",
    "PricingSnapshot",
    "Totals",
    "ORDER_TRANSITIONS",
    "ITEM_TRANSITIONS",
    "compute_totals",
    "derive_order_status",
    "order_status",
    "OrderStatusFeed",
    "PollingOrderStatusFeed",
    "build_order_output",
    "StatusSynchronizer",
]
