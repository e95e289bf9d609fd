"""
Recipes router.
Recipe entries per product, bulk replacement and stock-based availability.
Readable by front of house and kitchen; MANAGER and ADMIN edit.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db, unit_of_work
from shared.security.auth import ActorContext
from shared.utils.schemas import (
    AvailabilityOutput,
    BulkRecipeRequest,
    BulkRecipeResponse,
    LimitingIngredientOutput,
    RecipeEntryInput,
    RecipeEntryOutput,
    RecipeEntryUpdate,
)
from shared.config.logging import rest_api_logger as logger
from rest_api.models import ProductIngredient
from rest_api.services.domain import OrderConsumptionEngine, ProductAvailability, RecipeCatalog
from rest_api.services.permissions import Capability, require_capability


router = APIRouter(prefix="/api/recipes", tags=["recipes"])


def entry_to_output(entry: ProductIngredient) -> RecipeEntryOutput:
    return RecipeEntryOutput(
        id=entry.id,
        product_id=entry.product_id,
        ingredient_id=entry.ingredient_id,
        ingredient_name=entry.ingredient.name,
        unit=entry.ingredient.unit,
        quantity_required=entry.quantity_required,
    )


def availability_to_output(availability: ProductAvailability) -> AvailabilityOutput:
    return AvailabilityOutput(
        product_id=availability.product.id,
        product_name=availability.product.name,
        status=availability.status,
        max_portions=availability.max_portions,
        limiting_ingredients=[
            LimitingIngredientOutput(
                ingredient_id=limit.ingredient.id,
                name=limit.ingredient.name,
                current_stock=limit.ingredient.current_stock,
                minimum_stock=limit.ingredient.minimum_stock,
                quantity_required=limit.quantity_required,
                portions=limit.portions,
            )
            for limit in availability.limiting
        ],
    )


# =============================================================================
# Recipe entries
# =============================================================================


@router.get("/products/{product_id}", response_model=list[RecipeEntryOutput])
def get_recipe(
    product_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_READ)),
) -> list[RecipeEntryOutput]:
    """Recipe of one product. An empty list means the product is not stock-tracked."""
    catalog = RecipeCatalog(db)
    catalog.get_product(product_id)
    return [entry_to_output(e) for e in catalog.recipe_for(product_id)]


@router.post(
    "/products/{product_id}/ingredients",
    response_model=RecipeEntryOutput,
    status_code=status.HTTP_201_CREATED,
)
def add_recipe_entry(
    product_id: int,
    body: RecipeEntryInput,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_MANAGE)),
) -> RecipeEntryOutput:
    with unit_of_work(db):
        entry = RecipeCatalog(db).add_entry(product_id, body)
    return entry_to_output(entry)


@router.put("/products/{product_id}/ingredients/{ingredient_id}", response_model=RecipeEntryOutput)
def update_recipe_entry(
    product_id: int,
    ingredient_id: int,
    body: RecipeEntryUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_MANAGE)),
) -> RecipeEntryOutput:
    with unit_of_work(db):
        entry = RecipeCatalog(db).update_entry(product_id, ingredient_id, body.quantity_required)
    return entry_to_output(entry)


@router.delete(
    "/products/{product_id}/ingredients/{ingredient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def remove_recipe_entry(
    product_id: int,
    ingredient_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_MANAGE)),
) -> None:
    with unit_of_work(db):
        RecipeCatalog(db).remove_entry(product_id, ingredient_id)


@router.put("/bulk", response_model=BulkRecipeResponse)
def bulk_replace_recipes(
    body: BulkRecipeRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_MANAGE)),
) -> BulkRecipeResponse:
    """
    Replace the recipes of several products at once.

    Each product succeeds or fails on its own; failed products keep their
    previous recipe. Always 200, outcomes are reported per product.
    """
    with unit_of_work(db):
        results = RecipeCatalog(db).bulk_replace(body.recipes)

    succeeded = sum(1 for r in results if r.success)
    logger.info(
        "Bulk recipe replace",
        actor_id=actor.actor_id,
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )
    return BulkRecipeResponse(results=results, succeeded=succeeded, failed=len(results) - succeeded)


# =============================================================================
# Availability
# =============================================================================


@router.get("/availability", response_model=list[AvailabilityOutput])
def list_availability(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_READ)),
) -> list[AvailabilityOutput]:
    """Portions current stock can cover, for every active product."""
    catalog = RecipeCatalog(db)
    engine = OrderConsumptionEngine(db, catalog=catalog)
    return [
        availability_to_output(engine.product_availability(product))
        for product in catalog.list_products()
    ]


@router.get("/products/{product_id}/availability", response_model=AvailabilityOutput)
def get_product_availability(
    product_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.RECIPE_READ)),
) -> AvailabilityOutput:
    catalog = RecipeCatalog(db)
    product = catalog.get_product(product_id)
    return availability_to_output(OrderConsumptionEngine(db, catalog=catalog).product_availability(product))
