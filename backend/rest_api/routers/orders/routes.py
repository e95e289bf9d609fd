"""
Orders router.
Front-of-house order entry, status transitions and reads.
"""

from fastapi import APIRouter, Depends, Query, status

from shared.security.auth import ActorContext, current_actor
from shared.utils.schemas import (
    EditItemsRequest,
    ItemTransitionRequest,
    OrderCreateRequest,
    OrderFeedOutput,
    OrderOutput,
    OrderStatusName,
    OrderTypeName,
    StatusHistoryOutput,
    TransitionRequest,
)
from rest_api.routers._common import Pagination, get_pagination, get_synchronizer
from rest_api.services.domain import StatusSynchronizer
from rest_api.services.permissions import (
    Capability,
    authorize,
    capability_for_item_transition,
    capability_for_transition,
    require_capability,
)


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: OrderCreateRequest,
    actor: ActorContext = Depends(require_capability(Capability.ORDER_CREATE)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderOutput:
    """
    Submit a new order. It starts as pending; stock is reserved on confirmation.

    dine_in orders require table_ref.
    """
    return service.create_order(body, actor)


@router.get("", response_model=OrderFeedOutput)
def list_orders(
    status_filter: OrderStatusName | None = Query(default=None, alias="status"),
    order_type: OrderTypeName | None = Query(default=None),
    pagination: Pagination = Depends(get_pagination),
    actor: ActorContext = Depends(require_capability(Capability.ORDER_READ)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderFeedOutput:
    """List orders, newest first. Status filters match the derived status."""
    return service.list_orders(
        status=status_filter,
        order_type=order_type,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: int,
    actor: ActorContext = Depends(require_capability(Capability.ORDER_READ)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderOutput:
    return service.get_order(order_id)


@router.get("/{order_id}/history", response_model=list[StatusHistoryOutput])
def get_order_history(
    order_id: int,
    actor: ActorContext = Depends(require_capability(Capability.ORDER_READ)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> list[StatusHistoryOutput]:
    """Order- and item-level status changes, oldest first."""
    return service.order_history(order_id)


@router.post("/{order_id}/status", response_model=OrderOutput)
def transition_order(
    order_id: int,
    body: TransitionRequest,
    actor: ActorContext = Depends(current_actor),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderOutput:
    """
    Move an order to another status.

    Valid transitions (from the derived status):
    - pending -> confirmed (reserves stock) | cancelled
    - confirmed -> preparing | cancelled
    - preparing -> ready | cancelled (only while no item is ready or served)
    - ready -> served

    Completion is reported through /api/payments.
    """
    authorize(actor.role, capability_for_transition(body.status))
    return service.transition_order(order_id, body, actor)


@router.post("/{order_id}/items/{item_id}/status", response_model=OrderOutput)
def transition_item(
    order_id: int,
    item_id: int,
    body: ItemTransitionRequest,
    actor: ActorContext = Depends(current_actor),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderOutput:
    """Move one item forward: pending -> preparing -> ready -> served."""
    authorize(actor.role, capability_for_item_transition(body.status))
    return service.transition_item(order_id, item_id, body, actor)


@router.put("/{order_id}/items", response_model=OrderOutput)
def edit_order_items(
    order_id: int,
    body: EditItemsRequest,
    actor: ActorContext = Depends(require_capability(Capability.ORDER_EDIT)),
    service: StatusSynchronizer = Depends(get_synchronizer),
) -> OrderOutput:
    """
    Replace the item list before the kitchen starts.

    A confirmed order has its reservation released and the new items
    reserved again; a shortage leaves the order unchanged.
    """
    return service.edit_items(order_id, body, actor)
