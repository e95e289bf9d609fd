"""
Payments router.
The payment service settles the bill elsewhere and reports completion here.
"""

from fastapi import APIRouter, Depends

from shared.security.auth import ActorContext
from shared.utils.schemas import OrderOutput, PaymentCompleteRequest
from rest_api.routers._common import get_synchronizer
from rest_api.services.domain import StatusSynchronizer
from rest_api.services.permissions import Capability, require_capability


router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/orders/{order_id}/complete", response_model=OrderOutput)
def complete_order_payment(
    order_id: int,
    body: PaymentCompleteRequest,
    actor: ActorContext = Depends(require_capability(Capability.PAYMENT_COMPLETE)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderOutput:
    """
    Mark a served order as completed. Totals are frozen from here on.

    Publishes payment_completed after commit.
    """
    return service.complete_payment(order_id, body, actor)
