"""
Kitchen router.
Queue of orders the kitchen is working on.
"""

from fastapi import APIRouter, Depends

from shared.security.auth import ActorContext
from shared.utils.schemas import OrderFeedOutput
from rest_api.routers._common import get_synchronizer
from rest_api.services.domain import StatusSynchronizer
from rest_api.services.permissions import Capability, require_capability


router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])


@router.get("/orders", response_model=OrderFeedOutput)
def kitchen_queue(
    actor: ActorContext = Depends(require_capability(Capability.KITCHEN_VIEW)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderFeedOutput:
    """
    Orders whose derived status is confirmed, preparing or ready,
    ordered by creation time (oldest first).

    Item transitions go through /api/orders/{order_id}/items/{item_id}/status.
    """
    return service.kitchen_queue()
