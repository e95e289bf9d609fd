"""
Capability table for the single authorization boundary.

Every request performs exactly one check, ``authorize(role, capability)``.
Order transitions map to a capability through ``capability_for_transition``,
so handlers never compare role names themselves.
"""

from enum import Enum

from shared.config.constants import (
    FRONT_OF_HOUSE_ROLES,
    KITCHEN_ACCESS_ROLES,
    MANAGEMENT_ROLES,
    ItemStatus,
    OrderStatus,
    Roles,
)
from shared.utils.exceptions import ForbiddenError


class Capability(str, Enum):
    """Actions an actor may be granted."""

    ORDER_CREATE = "order:create"
    ORDER_READ = "order:read"
    ORDER_CONFIRM = "order:confirm"
    ORDER_EDIT = "order:edit"
    ORDER_CANCEL = "order:cancel"
    KITCHEN_PROGRESS = "kitchen:progress"  # preparing / ready
    ORDER_SERVE = "order:serve"
    KITCHEN_VIEW = "kitchen:view"
    PAYMENT_COMPLETE = "payment:complete"
    INVENTORY_READ = "inventory:read"
    INVENTORY_ADJUST = "inventory:adjust"
    RECIPE_READ = "recipe:read"
    RECIPE_MANAGE = "recipe:manage"
    CATALOG_MANAGE = "catalog:manage"


# Capability -> roles granted it
CAPABILITY_ROLES: dict[Capability, frozenset[str]] = {
    Capability.ORDER_CREATE: FRONT_OF_HOUSE_ROLES,
    Capability.ORDER_READ: frozenset(Roles.ALL),
    Capability.ORDER_CONFIRM: FRONT_OF_HOUSE_ROLES,
    Capability.ORDER_EDIT: FRONT_OF_HOUSE_ROLES,
    Capability.ORDER_CANCEL: FRONT_OF_HOUSE_ROLES,
    Capability.KITCHEN_PROGRESS: KITCHEN_ACCESS_ROLES,
    # As-ready service: servers or the kitchen hand food over
    Capability.ORDER_SERVE: FRONT_OF_HOUSE_ROLES | KITCHEN_ACCESS_ROLES,
    Capability.KITCHEN_VIEW: KITCHEN_ACCESS_ROLES,
    Capability.PAYMENT_COMPLETE: MANAGEMENT_ROLES | {Roles.PAYMENT},
    Capability.INVENTORY_READ: KITCHEN_ACCESS_ROLES,
    Capability.INVENTORY_ADJUST: MANAGEMENT_ROLES,
    Capability.RECIPE_READ: FRONT_OF_HOUSE_ROLES | KITCHEN_ACCESS_ROLES,
    Capability.RECIPE_MANAGE: MANAGEMENT_ROLES,
    Capability.CATALOG_MANAGE: MANAGEMENT_ROLES,
}

_TRANSITION_CAPABILITIES: dict[str, Capability] = {
    OrderStatus.CONFIRMED: Capability.ORDER_CONFIRM,
    OrderStatus.PREPARING: Capability.KITCHEN_PROGRESS,
    OrderStatus.READY: Capability.KITCHEN_PROGRESS,
    OrderStatus.SERVED: Capability.ORDER_SERVE,
    OrderStatus.CANCELLED: Capability.ORDER_CANCEL,
    OrderStatus.COMPLETED: Capability.PAYMENT_COMPLETE,
}


def is_allowed(role: str, capability: Capability) -> bool:
    return role in CAPABILITY_ROLES.get(capability, frozenset())


def authorize(role: str, capability: Capability) -> None:
    """
    Raise ForbiddenError unless ``role`` holds ``capability``.

    Usage:
        authorize(actor.role, capability_for_transition("cancelled"))
    """
    if not is_allowed(role, capability):
        raise ForbiddenError(capability.value, role=role)


def capability_for_transition(target: str) -> Capability:
    """Capability needed to move an order to ``target``."""
    try:
        return _TRANSITION_CAPABILITIES[target]
    except KeyError:
        raise ValueError(f"No capability for transition to {target!r}") from None


def capability_for_item_transition(target: str) -> Capability:
    """Capability needed to move a single item to ``target``."""
    if target == ItemStatus.SERVED:
        return Capability.ORDER_SERVE
    if target in (ItemStatus.PREPARING, ItemStatus.READY):
        return Capability.KITCHEN_PROGRESS
    raise ValueError(f"No capability for item transition to {target!r}")
