"""
Ingredient Ledger Service.

Sole writer of Ingredient.current_stock. Every change appends an
IngredientHistory row, so the ledger can always explain the current stock.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shared.config.constants import Limits, StockOperation
from shared.config.logging import audit_stock_change, get_logger
from shared.utils.exceptions import (
    DuplicateEntityError,
    IngredientNotFoundError,
    ValidationError,
)
from shared.utils.schemas import IngredientCreate, StockAdjustmentRequest
from shared.utils.validators import escape_like_pattern, quantize_stock, sanitize_search_term
from rest_api.models import Ingredient, IngredientHistory

logger = get_logger(__name__)


@dataclass
class StockChange:
    """Result of a manual stock change."""

    ingredient: Ingredient
    history: IngredientHistory
    # True when a decrease left the ingredient at or below its minimum
    reached_low_stock: bool


class IngredientLedger:
    """
    Domain service for ingredient stock.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, ingredient_id: int) -> Ingredient:
        ingredient = self._db.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise IngredientNotFoundError(ingredient_id)
        return ingredient

    def list_ingredients(
        self,
        include_inactive: bool = False,
        search: str | None = None,
        limit: int = Limits.DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[Ingredient]:
        query = select(Ingredient)
        if not include_inactive:
            query = query.where(Ingredient.is_active.is_(True))
        term = sanitize_search_term(search)
        if term:
            query = query.where(Ingredient.name.ilike(f"%{escape_like_pattern(term)}%", escape="\\"))
        return list(
            self._db.scalars(query.order_by(Ingredient.name).limit(limit).offset(offset)).all()
        )

    def list_low_stock(self) -> list[Ingredient]:
        """Active ingredients at or below their minimum stock."""
        return list(
            self._db.scalars(
                select(Ingredient)
                .where(
                    Ingredient.is_active.is_(True),
                    Ingredient.current_stock <= Ingredient.minimum_stock,
                )
                .order_by(Ingredient.name)
            ).all()
        )

    def history(
        self,
        ingredient_id: int,
        limit: int = Limits.HISTORY_PAGE_SIZE,
        offset: int = 0,
    ) -> list[IngredientHistory]:
        """Ledger rows of one ingredient, newest first."""
        self.get(ingredient_id)
        return list(
            self._db.scalars(
                select(IngredientHistory)
                .where(IngredientHistory.ingredient_id == ingredient_id)
                .order_by(IngredientHistory.id.desc())
                .limit(limit)
                .offset(offset)
            ).all()
        )

    def order_history(self, order_id: int) -> list[IngredientHistory]:
        """Every ledger row referencing an order, oldest first."""
        self._db.flush()
        return list(
            self._db.scalars(
                select(IngredientHistory)
                .where(IngredientHistory.order_id == order_id)
                .order_by(IngredientHistory.id)
            ).all()
        )

    def outstanding_consumption(self, order_id: int) -> dict[int, Decimal]:
        """
        Stock still held by an order, per ingredient.

        Consumption rows carry negative deltas and cancellation rows positive
        ones, so the net per ingredient is what a reversal must add back.
        """
        self._db.flush()
        rows = self._db.execute(
            select(IngredientHistory.ingredient_id, func.sum(IngredientHistory.quantity_delta))
            .where(
                IngredientHistory.order_id == order_id,
                IngredientHistory.operation.in_(
                    [StockOperation.ORDER_CONSUMPTION, StockOperation.ORDER_CANCELLATION]
                ),
            )
            .group_by(IngredientHistory.ingredient_id)
            .order_by(IngredientHistory.ingredient_id)
        ).all()

        outstanding: dict[int, Decimal] = {}
        for ingredient_id, net in rows:
            held = quantize_stock(-Decimal(net or 0))
            if held > 0:
                outstanding[ingredient_id] = held
        return outstanding

    # =========================================================================
    # Locking
    # =========================================================================

    def lock(self, ingredient_ids: Iterable[int]) -> dict[int, Ingredient]:
        """
        Lock ingredient rows for update, in ascending id order.

        A single global order means two units of work sharing an ingredient
        serialize instead of deadlocking. Pending changes are flushed first
        because the refreshed rows overwrite in-memory state.
        """
        ids = sorted(set(ingredient_ids))
        if not ids:
            return {}

        self._db.flush()
        rows = self._db.scalars(
            select(Ingredient)
            .where(Ingredient.id.in_(ids))
            .order_by(Ingredient.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).all()

        locked = {ingredient.id: ingredient for ingredient in rows}
        for ingredient_id in ids:
            if ingredient_id not in locked:
                raise IngredientNotFoundError(ingredient_id)
        return locked

    # =========================================================================
    # Writes
    # =========================================================================

    def apply_change(
        self,
        ingredient: Ingredient,
        delta: Decimal,
        operation: str,
        actor_id: str | None = None,
        order_id: int | None = None,
        reason: str | None = None,
        notes: str | None = None,
    ) -> IngredientHistory:
        """
        Apply a signed stock change to a locked ingredient and record it.

        Raises:
            ValidationError: If the change would make stock negative.
        """
        if operation not in StockOperation.ALL:
            raise ValueError(f"Unknown stock operation: {operation}")

        previous = quantize_stock(ingredient.current_stock)
        delta = quantize_stock(delta)
        new_stock = quantize_stock(previous + delta)

        if new_stock < 0:
            raise ValidationError(
                f"{operation} of {-delta} {ingredient.unit} would leave {ingredient.name} "
                f"with negative stock ({previous} available)",
                field="quantity",
                ingredient_id=ingredient.id,
            )

        ingredient.current_stock = new_stock
        entry = IngredientHistory(
            ingredient_id=ingredient.id,
            operation=operation,
            quantity_delta=delta,
            previous_stock=previous,
            new_stock=new_stock,
            order_id=order_id,
            actor_id=actor_id,
            reason=reason,
            notes=notes,
        )
        self._db.add(entry)

        audit_stock_change(
            operation,
            ingredient.id,
            delta,
            previous,
            new_stock,
            actor_id=actor_id,
            order_id=order_id,
        )
        return entry

    def create_ingredient(self, data: IngredientCreate, actor_id: str | None = None) -> Ingredient:
        name = data.name.strip()
        exists = self._db.scalar(select(Ingredient.id).where(func.lower(Ingredient.name) == name.lower()))
        if exists is not None:
            raise DuplicateEntityError("Ingredient", "name", name)

        ingredient = Ingredient(
            name=name,
            unit=data.unit.strip(),
            current_stock=quantize_stock(data.current_stock),
            minimum_stock=quantize_stock(data.minimum_stock),
            unit_cost_cents=data.unit_cost_cents,
        )
        ingredient.set_created_by(actor_id)
        self._db.add(ingredient)
        self._db.flush()

        logger.info(
            "Ingredient created",
            ingredient_id=ingredient.id,
            name=ingredient.name,
            stock=str(ingredient.current_stock),
        )
        return ingredient

    def adjust_stock(
        self,
        ingredient_id: int,
        request: StockAdjustmentRequest,
        actor_id: str | None = None,
    ) -> StockChange:
        """Apply a manual restock, spoilage or adjustment."""
        if request.operation not in StockOperation.MANUAL:
            raise ValidationError(f"{request.operation} cannot be applied manually", field="operation")

        ingredient = self.lock([ingredient_id])[ingredient_id]
        delta = request.signed_delta
        entry = self.apply_change(
            ingredient,
            delta,
            request.operation,
            actor_id=actor_id,
            reason=request.reason,
            notes=request.notes,
        )
        ingredient.set_updated_by(actor_id)
        self._db.flush()

        logger.info(
            "Stock adjusted",
            ingredient_id=ingredient.id,
            operation=request.operation,
            delta=str(entry.quantity_delta),
            new_stock=str(entry.new_stock),
        )
        return StockChange(
            ingredient=ingredient,
            history=entry,
            reached_low_stock=delta < 0 and ingredient.is_low_stock,
        )
