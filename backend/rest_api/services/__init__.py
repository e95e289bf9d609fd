"""
Services module for business logic.

- domain/: Application services (orders, stock, recipes) - USE THESE
- permissions/: Capability table and the authorization boundary

Usage:
    from rest_api.services.domain import StatusSynchronizer
    service = StatusSynchronizer(db, publisher)
    order = service.get_order(order_id)
"""

from .domain import (
    RecipeCatalog,
    IngredientLedger,
    OrderConsumptionEngine,
    OrderLifecycle,
    StatusSynchronizer,
)
from .permissions import (
    Capability,
    authorize,
    require_capability,
)

__all__ = [
    # Domain services
    "RecipeCatalog",
    "IngredientLedger",
    "OrderConsumptionEngine",
    "OrderLifecycle",
    "StatusSynchronizer",
    # Permissions
    "Capability",
    "authorize",
    "require_capability",
]
