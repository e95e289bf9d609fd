"""
Request-boundary entry point for capability checks.
"""

from fastapi import Depends

from shared.security.auth import ActorContext, current_actor
from .capabilities import Capability, authorize


def require_capability(capability: Capability):
    """
    FastAPI dependency factory for endpoints with a fixed capability.

    Usage:
        @router.get("/kitchen/orders")
        def kitchen_queue(actor: ActorContext = Depends(require_capability(Capability.KITCHEN_VIEW))):
            ...
    """

    def dependency(actor: ActorContext = Depends(current_actor)) -> ActorContext:
        authorize(actor.role, capability)
        return actor

    return dependency
