"""
Authorization boundary.

Usage:
    from rest_api.services.permissions import Capability, authorize, capability_for_transition

    authorize(actor.role, capability_for_transition(body.status))
"""

from .capabilities import (
    Capability,
    CAPABILITY_ROLES,
    authorize,
    is_allowed,
    capability_for_transition,
    capability_for_item_transition,
)
from .context import require_capability

__all__ = [
    "Capability",
    "CAPABILITY_ROLES",
    "authorize",
    "is_allowed",
    "capability_for_transition",
    "capability_for_item_transition",
    "require_capability",
]
