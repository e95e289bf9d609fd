"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from shared.config.constants import Limits


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["ADMIN", "MANAGER", "SERVER", "COUNTER", "KITCHEN", "PAYMENT"]
OrderStatusName = Literal["pending", "confirmed", "preparing", "ready", "served", "completed", "cancelled"]
ItemStatusName = Literal["pending", "preparing", "ready", "served", "cancelled"]
OrderTypeName = Literal["dine_in", "takeout", "delivery"]
StockOperationName = Literal["order_consumption", "order_cancellation", "restock", "adjustment", "spoilage"]
ManualStockOperation = Literal["restock", "adjustment", "spoilage"]
AvailabilityName = Literal["available", "low_stock", "out_of_stock"]

# Order-level targets a client may request; "completed" goes through payments
OrderTransitionTarget = Literal["confirmed", "preparing", "ready", "served", "cancelled"]
ItemTransitionTarget = Literal["preparing", "ready", "served"]

StockQuantity = Decimal


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    """One line of an order submission."""

    product_id: int = Field(gt=0)
    quantity: int = Field(ge=1, le=Limits.MAX_ITEM_QUANTITY)
    special_instructions: str | None = Field(default=None, max_length=Limits.MAX_INSTRUCTIONS_LENGTH)


class OrderCreateRequest(BaseModel):
    """Request to submit a new order."""

    order_type: OrderTypeName
    table_ref: str | None = Field(default=None, max_length=20)
    customer_name: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=Limits.MAX_INSTRUCTIONS_LENGTH)
    discount_cents: int = Field(default=0, ge=0)
    items: list[OrderItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)


class TransitionRequest(BaseModel):
    """Request to move an order to another status."""

    status: OrderTransitionTarget
    expected_version: int = Field(ge=1)
    notes: str | None = Field(default=None, max_length=Limits.MAX_INSTRUCTIONS_LENGTH)


class ItemTransitionRequest(BaseModel):
    """Request to move a single item (kitchen)."""

    status: ItemTransitionTarget
    expected_version: int = Field(ge=1)


class EditItemsRequest(BaseModel):
    """Replace the item list of an order that the kitchen has not started."""

    items: list[OrderItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)
    expected_version: int = Field(ge=1)
    discount_cents: int | None = Field(default=None, ge=0)


class PaymentCompleteRequest(BaseModel):
    """Payment collaborator reports a settled order."""

    expected_version: int = Field(ge=1)
    payment_reference: str | None = Field(default=None, max_length=100)


class OrderItemOutput(BaseModel):
    """Output for a single item in an order."""

    id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    special_instructions: str | None = None
    position: int
    status: ItemStatusName


class OrderOutput(BaseModel):
    """Output for an order with its items and derived status."""

    id: int
    order_number: str
    order_type: OrderTypeName
    status: OrderStatusName
    table_ref: str | None = None
    customer_name: str | None = None
    notes: str | None = None
    subtotal_cents: int
    tax_rate: Decimal
    tax_cents: int
    discount_cents: int
    total_cents: int
    ingredients_consumed: bool
    version: int
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    confirmed_at: datetime | None = None
    served_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    items: list[OrderItemOutput]
    # Clients poll for updates at this interval
    poll_interval_seconds: int


class OrderFeedOutput(BaseModel):
    """A page of orders as seen by a polling client."""

    orders: list[OrderOutput]
    total: int
    as_of: datetime
    poll_interval_seconds: int


class StatusHistoryOutput(BaseModel):
    """One entry of an order's status audit trail."""

    id: int
    scope: Literal["order", "item"]
    item_id: int | None = None
    previous_status: str | None = None
    new_status: str
    actor_id: str | None = None
    actor_role: str | None = None
    notes: str | None = None
    created_at: datetime


# =============================================================================
# Inventory Schemas
# =============================================================================


class IngredientCreate(BaseModel):
    """Request to register a stock-tracked ingredient."""

    name: str = Field(min_length=1, max_length=100)
    unit: str = Field(min_length=1, max_length=20)
    current_stock: StockQuantity = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3)
    minimum_stock: StockQuantity = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3)
    unit_cost_cents: int = Field(default=0, ge=0)


class IngredientOutput(BaseModel):
    """Output for an ingredient and its stock level."""

    id: int
    name: str
    unit: str
    current_stock: Decimal
    minimum_stock: Decimal
    unit_cost_cents: int
    is_active: bool
    is_low_stock: bool


class StockAdjustmentRequest(BaseModel):
    """
    Manual stock change.

    For restock and spoilage, quantity is a positive magnitude; the sign is
    implied by the operation. For adjustment, quantity is a signed delta.
    """

    operation: ManualStockOperation
    quantity: StockQuantity = Field(max_digits=12, decimal_places=3)
    reason: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=Limits.MAX_INSTRUCTIONS_LENGTH)

    @model_validator(mode="after")
    def _check_quantity(self) -> "StockAdjustmentRequest":
        if self.operation == "adjustment":
            if self.quantity == 0:
                raise ValueError("adjustment quantity must be non-zero")
        elif self.quantity <= 0:
            raise ValueError(f"{self.operation} quantity must be positive")
        return self

    @property
    def signed_delta(self) -> Decimal:
        if self.operation == "spoilage":
            return -self.quantity
        return self.quantity


class IngredientHistoryOutput(BaseModel):
    """One stock ledger entry."""

    id: int
    ingredient_id: int
    operation: StockOperationName
    quantity_delta: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    order_id: int | None = None
    actor_id: str | None = None
    reason: str | None = None
    notes: str | None = None
    created_at: datetime


class StockAdjustmentResponse(BaseModel):
    """Result of a manual stock change."""

    ingredient: IngredientOutput
    history: IngredientHistoryOutput


# =============================================================================
# Recipe & Product Schemas
# =============================================================================


class ProductCreate(BaseModel):
    """Request to create a catalog product."""

    name: str = Field(min_length=1, max_length=200)
    price_cents: int = Field(ge=0)
    is_available: bool = True


class ProductOutput(BaseModel):
    """Output for a catalog product."""

    id: int
    name: str
    price_cents: int
    is_available: bool


class RecipeEntryInput(BaseModel):
    """One ingredient a product consumes per unit."""

    ingredient_id: int = Field(gt=0)
    quantity_required: StockQuantity = Field(gt=0, max_digits=12, decimal_places=3)


class RecipeEntryUpdate(BaseModel):
    """Change the quantity of an existing recipe entry."""

    quantity_required: StockQuantity = Field(gt=0, max_digits=12, decimal_places=3)


class RecipeEntryOutput(BaseModel):
    """Output for a recipe entry."""

    id: int
    product_id: int
    ingredient_id: int
    ingredient_name: str
    unit: str
    quantity_required: Decimal


class BulkRecipeItem(BaseModel):
    """Full recipe for one product in a bulk replace."""

    product_id: int = Field(gt=0)
    entries: list[RecipeEntryInput]


class BulkRecipeRequest(BaseModel):
    """Replace the recipes of several products at once."""

    recipes: list[BulkRecipeItem] = Field(min_length=1, max_length=Limits.MAX_PAGE_SIZE)


class BulkRecipeResult(BaseModel):
    """Outcome for one product of a bulk replace."""

    product_id: int
    success: bool
    entries: int = 0
    error: str | None = None
    code: str | None = None


class BulkRecipeResponse(BaseModel):
    """Per-product outcomes of a bulk replace."""

    results: list[BulkRecipeResult]
    succeeded: int
    failed: int


class LimitingIngredientOutput(BaseModel):
    """An ingredient that bounds how many portions can be made."""

    ingredient_id: int
    name: str
    current_stock: Decimal
    minimum_stock: Decimal
    quantity_required: Decimal
    portions: int


class AvailabilityOutput(BaseModel):
    """Product availability derived from ingredient stock."""

    product_id: int
    product_name: str
    status: AvailabilityName
    # None means the product has no tracked recipe and is never stock-limited
    max_portions: int | None = None
    limiting_ingredients: list[LimitingIngredientOutput] = []


# =============================================================================
# Error Response
# =============================================================================


class ErrorResponse(BaseModel):
    """Error body returned for every AppException."""

    detail: str
    code: str
