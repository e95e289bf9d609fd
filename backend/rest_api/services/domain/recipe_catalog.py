"""
Recipe Catalog Service.

Maps each product to the ingredients (and quantities) one unit consumes.
A product without recipe entries is not stock-tracked.
"""

from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from shared.config.logging import get_logger
from shared.utils.exceptions import (
    AppException,
    DuplicateEntityError,
    IngredientNotFoundError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from shared.utils.schemas import BulkRecipeItem, BulkRecipeResult, ProductCreate, RecipeEntryInput
from shared.utils.validators import quantize_stock
from rest_api.models import Ingredient, Product, ProductIngredient

logger = get_logger(__name__)


class RecipeCatalog:
    """
    Domain service for products and their recipes.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Products
    # =========================================================================

    def get_product(self, product_id: int) -> Product:
        product = self._db.get(Product, product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)
        return product

    def list_products(self, include_unavailable: bool = True) -> list[Product]:
        query = select(Product).where(Product.is_active.is_(True))
        if not include_unavailable:
            query = query.where(Product.is_available.is_(True))
        return list(self._db.scalars(query.order_by(Product.name)).all())

    def create_product(self, data: ProductCreate, actor_id: str | None = None) -> Product:
        product = Product(
            name=data.name.strip(),
            price_cents=data.price_cents,
            is_available=data.is_available,
        )
        product.set_created_by(actor_id)
        self._db.add(product)
        self._db.flush()

        logger.info("Product created", product_id=product.id, name=product.name)
        return product

    # =========================================================================
    # Lookups
    # =========================================================================

    def recipe_for(self, product_id: int) -> list[ProductIngredient]:
        """Recipe entries of one product, ordered by ingredient id."""
        return self.recipes_for([product_id]).get(product_id, [])

    def recipes_for(self, product_ids: Iterable[int]) -> dict[int, list[ProductIngredient]]:
        """
        Recipe entries for a set of products in one query.

        Products without entries are absent from the result.
        """
        ids = set(product_ids)
        if not ids:
            return {}

        entries = self._db.scalars(
            select(ProductIngredient)
            .options(selectinload(ProductIngredient.ingredient))
            .where(ProductIngredient.product_id.in_(ids))
            .order_by(ProductIngredient.product_id, ProductIngredient.ingredient_id)
        ).all()

        result: dict[int, list[ProductIngredient]] = {}
        for entry in entries:
            result.setdefault(entry.product_id, []).append(entry)
        return result

    def _get_entry(self, product_id: int, ingredient_id: int) -> ProductIngredient:
        entry = self._db.scalar(
            select(ProductIngredient).where(
                ProductIngredient.product_id == product_id,
                ProductIngredient.ingredient_id == ingredient_id,
            )
        )
        if entry is None:
            raise NotFoundError(
                "Recipe entry",
                f"{product_id}/{ingredient_id}",
                product_id=product_id,
                ingredient_id=ingredient_id,
            )
        return entry

    def _require_ingredients(self, ingredient_ids: Iterable[int]) -> dict[int, Ingredient]:
        ids = set(ingredient_ids)
        found = {
            ing.id: ing
            for ing in self._db.scalars(
                select(Ingredient).where(Ingredient.id.in_(ids), Ingredient.is_active.is_(True))
            ).all()
        }
        for ingredient_id in sorted(ids):
            if ingredient_id not in found:
                raise IngredientNotFoundError(ingredient_id)
        return found

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def validate_entries(entries: Iterable[RecipeEntryInput]) -> None:
        """
        Reject duplicate ingredients and non-positive quantities.

        Raises:
            ValidationError: On the first invalid entry.
        """
        seen: set[int] = set()
        for entry in entries:
            if entry.quantity_required <= 0:
                raise ValidationError(
                    f"quantity_required must be positive for ingredient {entry.ingredient_id}",
                    field="quantity_required",
                )
            if entry.ingredient_id in seen:
                raise ValidationError(
                    f"Ingredient {entry.ingredient_id} appears more than once",
                    field="ingredient_id",
                )
            seen.add(entry.ingredient_id)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_entry(self, product_id: int, entry: RecipeEntryInput) -> ProductIngredient:
        self.get_product(product_id)
        self._require_ingredients([entry.ingredient_id])
        self.validate_entries([entry])

        existing = self._db.scalar(
            select(ProductIngredient.id).where(
                ProductIngredient.product_id == product_id,
                ProductIngredient.ingredient_id == entry.ingredient_id,
            )
        )
        if existing is not None:
            raise DuplicateEntityError("Recipe entry", "ingredient_id", entry.ingredient_id)

        recipe_entry = ProductIngredient(
            product_id=product_id,
            ingredient_id=entry.ingredient_id,
            quantity_required=quantize_stock(entry.quantity_required),
        )
        self._db.add(recipe_entry)
        self._db.flush()

        logger.info(
            "Recipe entry added",
            product_id=product_id,
            ingredient_id=entry.ingredient_id,
            quantity=str(recipe_entry.quantity_required),
        )
        return recipe_entry

    def update_entry(self, product_id: int, ingredient_id: int, quantity: Decimal) -> ProductIngredient:
        if quantity <= 0:
            raise ValidationError("quantity_required must be positive", field="quantity_required")

        entry = self._get_entry(product_id, ingredient_id)
        entry.quantity_required = quantize_stock(quantity)
        self._db.flush()

        logger.info(
            "Recipe entry updated",
            product_id=product_id,
            ingredient_id=ingredient_id,
            quantity=str(entry.quantity_required),
        )
        return entry

    def remove_entry(self, product_id: int, ingredient_id: int) -> None:
        entry = self._get_entry(product_id, ingredient_id)
        self._db.delete(entry)
        self._db.flush()

        logger.info("Recipe entry removed", product_id=product_id, ingredient_id=ingredient_id)

    def replace_recipe(self, product_id: int, entries: list[RecipeEntryInput]) -> list[ProductIngredient]:
        """Replace every entry of a product's recipe. An empty list untracks the product."""
        self.get_product(product_id)
        self.validate_entries(entries)
        if entries:
            self._require_ingredients(e.ingredient_id for e in entries)

        self._db.execute(delete(ProductIngredient).where(ProductIngredient.product_id == product_id))

        new_entries = [
            ProductIngredient(
                product_id=product_id,
                ingredient_id=e.ingredient_id,
                quantity_required=quantize_stock(e.quantity_required),
            )
            for e in entries
        ]
        self._db.add_all(new_entries)
        self._db.flush()
        return new_entries

    def bulk_replace(self, recipes: list[BulkRecipeItem]) -> list[BulkRecipeResult]:
        """
        Replace recipes for several products.

        Each product runs in its own savepoint, so one invalid recipe does not
        discard the others. Returns one result per product, in request order.
        """
        results: list[BulkRecipeResult] = []
        for item in recipes:
            try:
                with self._db.begin_nested():
                    entries = self.replace_recipe(item.product_id, item.entries)
            except AppException as exc:
                results.append(
                    BulkRecipeResult(
                        product_id=item.product_id,
                        success=False,
                        error=exc.detail,
                        code=exc.code,
                    )
                )
            except IntegrityError as exc:
                logger.warning("Bulk recipe integrity error", product_id=item.product_id, error=str(exc.orig))
                results.append(
                    BulkRecipeResult(
                        product_id=item.product_id,
                        success=False,
                        error="Recipe violates a database constraint",
                        code="integrity_error",
                    )
                )
            else:
                results.append(
                    BulkRecipeResult(product_id=item.product_id, success=True, entries=len(entries))
                )

        logger.info(
            "Bulk recipe replace finished",
            products=len(recipes),
            failed=sum(1 for r in results if not r.success),
        )
        return results
