"""
Inventory router.
Ingredient stock levels and the append-only stock ledger.
MANAGER and ADMIN adjust stock; KITCHEN can read it.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shared.config.logging import inventory_logger as logger
from shared.infrastructure.db import get_db, unit_of_work
from shared.infrastructure.events import (
    NotificationPublisher,
    emit_events,
    get_notification_publisher,
    low_stock_event,
)
from shared.security.auth import ActorContext
from shared.utils.exceptions import OrderNotFoundError
from shared.utils.schemas import (
    IngredientCreate,
    IngredientHistoryOutput,
    IngredientOutput,
    StockAdjustmentRequest,
    StockAdjustmentResponse,
)
from rest_api.models import Ingredient, IngredientHistory, Order
from rest_api.routers._common import Pagination, get_history_pagination, get_pagination
from rest_api.services.domain import IngredientLedger
from rest_api.services.permissions import Capability, require_capability


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


def ingredient_to_output(ingredient: Ingredient) -> IngredientOutput:
    return IngredientOutput(
        id=ingredient.id,
        name=ingredient.name,
        unit=ingredient.unit,
        current_stock=ingredient.current_stock,
        minimum_stock=ingredient.minimum_stock,
        unit_cost_cents=ingredient.unit_cost_cents,
        is_active=ingredient.is_active,
        is_low_stock=ingredient.is_low_stock,
    )


def history_to_output(entry: IngredientHistory) -> IngredientHistoryOutput:
    return IngredientHistoryOutput(
        id=entry.id,
        ingredient_id=entry.ingredient_id,
        operation=entry.operation,
        quantity_delta=entry.quantity_delta,
        previous_stock=entry.previous_stock,
        new_stock=entry.new_stock,
        order_id=entry.order_id,
        actor_id=entry.actor_id,
        reason=entry.reason,
        notes=entry.notes,
        created_at=entry.created_at,
    )


# =============================================================================
# Ingredients
# =============================================================================


@router.get("/ingredients", response_model=list[IngredientOutput])
def list_ingredients(
    include_inactive: bool = Query(default=False),
    search: str | None = Query(default=None, max_length=100),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_READ)),
) -> list[IngredientOutput]:
    ledger = IngredientLedger(db)
    ingredients = ledger.list_ingredients(
        include_inactive=include_inactive,
        search=search,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [ingredient_to_output(i) for i in ingredients]


@router.post("/ingredients", response_model=IngredientOutput, status_code=status.HTTP_201_CREATED)
def create_ingredient(
    body: IngredientCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_ADJUST)),
) -> IngredientOutput:
    """Register an ingredient with its opening stock. Names are unique, case-insensitive."""
    with unit_of_work(db):
        ingredient = IngredientLedger(db).create_ingredient(body, actor_id=actor.actor_id)
    return ingredient_to_output(ingredient)


@router.get("/ingredients/low-stock", response_model=list[IngredientOutput])
def list_low_stock(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_READ)),
) -> list[IngredientOutput]:
    """Active ingredients at or below their minimum stock."""
    return [ingredient_to_output(i) for i in IngredientLedger(db).list_low_stock()]


@router.get("/ingredients/{ingredient_id}", response_model=IngredientOutput)
def get_ingredient(
    ingredient_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_READ)),
) -> IngredientOutput:
    return ingredient_to_output(IngredientLedger(db).get(ingredient_id))


@router.get("/ingredients/{ingredient_id}/history", response_model=list[IngredientHistoryOutput])
def get_ingredient_history(
    ingredient_id: int,
    pagination: Pagination = Depends(get_history_pagination),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_READ)),
) -> list[IngredientHistoryOutput]:
    """Stock ledger for one ingredient, newest first."""
    entries = IngredientLedger(db).history(
        ingredient_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [history_to_output(e) for e in entries]


@router.get("/orders/{order_id}/consumption", response_model=list[IngredientHistoryOutput])
def get_order_consumption(
    order_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_READ)),
) -> list[IngredientHistoryOutput]:
    """Every stock movement caused by one order (reservations and reversals), oldest first."""
    if db.get(Order, order_id) is None:
        raise OrderNotFoundError(order_id)
    return [history_to_output(e) for e in IngredientLedger(db).order_history(order_id)]


# =============================================================================
# Adjustments
# =============================================================================


@router.post(
    "/ingredients/{ingredient_id}/adjustments",
    response_model=StockAdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def adjust_stock(
    ingredient_id: int,
    body: StockAdjustmentRequest,
    db: Session = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
    actor: ActorContext = Depends(require_capability(Capability.INVENTORY_ADJUST)),
) -> StockAdjustmentResponse:
    """
    Manual stock change.

    - restock: quantity > 0 is added
    - spoilage: quantity > 0 is removed
    - adjustment: signed correction, non-zero

    Stock can never go below zero. Removing stock down to the minimum
    publishes a low_stock alert.
    """
    with unit_of_work(db):
        change = IngredientLedger(db).adjust_stock(ingredient_id, body, actor_id=actor.actor_id)

    if change.reached_low_stock:
        ingredient = change.ingredient
        logger.warning(
            "Ingredient at or below minimum after manual change",
            ingredient_id=ingredient.id,
            stock=str(ingredient.current_stock),
        )
        emit_events(
            publisher,
            [
                low_stock_event(
                    ingredient_id=ingredient.id,
                    ingredient_name=ingredient.name,
                    current_stock=ingredient.current_stock,
                    minimum_stock=ingredient.minimum_stock,
                    unit=ingredient.unit,
                    actor_id=actor.actor_id,
                    actor_role=actor.role,
                )
            ],
        )

    return StockAdjustmentResponse(
        ingredient=ingredient_to_output(change.ingredient),
        history=history_to_output(change.history),
    )
