"""
Order Consumption Engine.

Resolves recipes for an order, validates the whole demand in one pass and
reserves it all-or-nothing. Cancellation reverses exactly what the order
still holds.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from shared.config.constants import AvailabilityStatus, StockOperation
from shared.config.logging import get_logger
from shared.utils.exceptions import InsufficientStockError
from shared.utils.validators import quantize_stock
from rest_api.models import Ingredient, IngredientHistory, Order, Product
from .recipe_catalog import RecipeCatalog
from .ingredient_ledger import IngredientLedger

logger = get_logger(__name__)


@dataclass
class Reservation:
    """Outcome of reserving stock for an order."""

    consumed: bool
    history: list[IngredientHistory] = field(default_factory=list)
    # Ingredients left at or below their minimum by this reservation
    low_stock: list[Ingredient] = field(default_factory=list)


@dataclass
class LimitingIngredient:
    ingredient: Ingredient
    quantity_required: Decimal
    portions: int


@dataclass
class ProductAvailability:
    """How many portions of a product current stock allows."""

    product: Product
    status: str
    # None when the product has no recipe and is never stock-limited
    max_portions: int | None
    limiting: list[LimitingIngredient] = field(default_factory=list)


class OrderConsumptionEngine:
    """
    Domain service turning orders into ingredient consumption.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(
        self,
        db: Session,
        catalog: RecipeCatalog | None = None,
        ledger: IngredientLedger | None = None,
    ):
        self._db = db
        self._catalog = catalog or RecipeCatalog(db)
        self._ledger = ledger or IngredientLedger(db)

    @property
    def ledger(self) -> IngredientLedger:
        return self._ledger

    def compute_demand(self, lines: Iterable[tuple[int, int]]) -> dict[int, Decimal]:
        """
        Total quantity needed per ingredient for (product_id, quantity) lines.

        Untracked products contribute nothing.
        """
        lines = list(lines)
        recipes = self._catalog.recipes_for(product_id for product_id, _ in lines)

        demand: dict[int, Decimal] = defaultdict(Decimal)
        for product_id, quantity in lines:
            for entry in recipes.get(product_id, []):
                demand[entry.ingredient_id] += entry.quantity_required * quantity

        return {ingredient_id: quantize_stock(qty) for ingredient_id, qty in sorted(demand.items())}

    def reserve(self, order: Order, actor_id: str | None = None) -> Reservation:
        """
        Reserve stock for every item of an order.

        All touched ingredients are locked (ascending id) and checked before
        anything is written. Every short ingredient is reported, the first
        one by id at the top level of the error.

        Raises:
            InsufficientStockError: If any ingredient cannot cover its demand.
        """
        if order.ingredients_consumed:
            logger.warning("Order already holds a reservation", order_id=order.id)
            return Reservation(consumed=True)

        demand = self.compute_demand((item.product_id, item.quantity) for item in order.items)
        if not demand:
            logger.info("Order has no stock-tracked products", order_id=order.id)
            return Reservation(consumed=False)

        locked = self._ledger.lock(demand.keys())

        shortages = []
        for ingredient_id, needed in demand.items():
            ingredient = locked[ingredient_id]
            available = quantize_stock(ingredient.current_stock)
            if available < needed:
                shortages.append((ingredient, needed, available))

        if shortages:
            first, needed, available = shortages[0]
            raise InsufficientStockError(
                first.id,
                first.name,
                needed,
                available,
                missing=[
                    {
                        "ingredient_id": ingredient.id,
                        "ingredient": ingredient.name,
                        "unit": ingredient.unit,
                        "has": str(has),
                        "needs": str(needs),
                        "shortage": str(needs - has),
                    }
                    for ingredient, needs, has in shortages
                ],
                order_id=order.id,
            )

        reservation = Reservation(consumed=True)
        for ingredient_id, needed in demand.items():
            ingredient = locked[ingredient_id]
            entry = self._ledger.apply_change(
                ingredient,
                -needed,
                StockOperation.ORDER_CONSUMPTION,
                actor_id=actor_id,
                order_id=order.id,
                reason=f"Order {order.order_number}",
            )
            reservation.history.append(entry)
            if ingredient.is_low_stock:
                reservation.low_stock.append(ingredient)

        order.ingredients_consumed = True

        logger.info(
            "Ingredients reserved",
            order_id=order.id,
            ingredients=len(demand),
            low_stock=[i.id for i in reservation.low_stock],
        )
        return reservation

    def release(self, order: Order, actor_id: str | None = None, reason: str | None = None) -> list[IngredientHistory]:
        """
        Return everything an order still holds to stock.

        A no-op when the order holds no reservation, so a reversal is never
        applied twice.
        """
        if not order.ingredients_consumed:
            return []

        outstanding = self._ledger.outstanding_consumption(order.id)
        locked = self._ledger.lock(outstanding.keys())

        entries = [
            self._ledger.apply_change(
                locked[ingredient_id],
                quantity,
                StockOperation.ORDER_CANCELLATION,
                actor_id=actor_id,
                order_id=order.id,
                reason=reason or f"Order {order.order_number} cancelled",
            )
            for ingredient_id, quantity in outstanding.items()
        ]

        order.ingredients_consumed = False

        logger.info("Ingredients released", order_id=order.id, ingredients=len(entries))
        return entries

    def product_availability(self, product: Product) -> ProductAvailability:
        """Portions of a product that current stock can cover."""
        entries = self._catalog.recipe_for(product.id)
        if not entries:
            return ProductAvailability(
                product=product,
                status=AvailabilityStatus.AVAILABLE,
                max_portions=None,
            )

        portions_by_entry = [
            (entry, int(quantize_stock(entry.ingredient.current_stock) // entry.quantity_required))
            for entry in entries
        ]
        max_portions = min(portions for _, portions in portions_by_entry)
        limiting = [
            LimitingIngredient(
                ingredient=entry.ingredient,
                quantity_required=entry.quantity_required,
                portions=portions,
            )
            for entry, portions in portions_by_entry
            if portions == max_portions
        ]

        if max_portions == 0:
            status = AvailabilityStatus.OUT_OF_STOCK
        elif any(entry.ingredient.is_low_stock for entry in entries):
            status = AvailabilityStatus.LOW_STOCK
        else:
            status = AvailabilityStatus.AVAILABLE

        return ProductAvailability(
            product=product,
            status=status,
            max_portions=max_portions,
            limiting=limiting,
        )
