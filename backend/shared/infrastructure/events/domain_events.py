"""
Domain Event Builders.

High-level constructors for the events the order and inventory services emit.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from .event_schema import Event
from .event_types import ORDER_CONFIRMED, ORDER_READY, LOW_STOCK, PAYMENT_COMPLETED


def _actor(actor_id: str | None, actor_role: str | None) -> dict[str, Any]:
    return {"id": actor_id, "role": actor_role}


def order_event(
    event_type: str,
    order_id: int,
    order_number: str,
    status: str,
    version: int,
    actor_id: str | None = None,
    actor_role: str | None = None,
    **entity: Any,
) -> Event:
    """Build an order lifecycle event (confirmed, ready, payment completed)."""
    if event_type not in (ORDER_CONFIRMED, ORDER_READY, PAYMENT_COMPLETED):
        raise ValueError(f"{event_type} is not an order event")
    return Event(
        type=event_type,
        order_id=order_id,
        entity={
            "order_number": order_number,
            "status": status,
            "version": version,
            **entity,
        },
        actor=_actor(actor_id, actor_role),
    )


def low_stock_event(
    ingredient_id: int,
    ingredient_name: str,
    current_stock: Decimal,
    minimum_stock: Decimal,
    unit: str,
    order_id: int | None = None,
    actor_id: str | None = None,
    actor_role: str | None = None,
) -> Event:
    """Build a low-stock alert for one ingredient."""
    return Event(
        type=LOW_STOCK,
        order_id=order_id,
        entity={
            "ingredient_id": ingredient_id,
            "ingredient_name": ingredient_name,
            "current_stock": str(current_stock),
            "minimum_stock": str(minimum_stock),
            "unit": unit,
        },
        actor=_actor(actor_id, actor_role),
    )
