"""
Tests for RecipeCatalog domain service.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from rest_api.models import ProductIngredient
from rest_api.services.domain import RecipeCatalog
from shared.utils.exceptions import (
    DuplicateEntityError,
    IngredientNotFoundError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from shared.utils.schemas import BulkRecipeItem, ProductCreate, RecipeEntryInput
from tests.conftest import make_ingredient, make_product


def entry(ingredient, qty) -> RecipeEntryInput:
    return RecipeEntryInput(ingredient_id=ingredient.id, quantity_required=Decimal(qty))


class TestRecipeLookup:
    """Recipe reads."""

    def test_recipe_for_untracked_product_is_empty(self, db_session, untracked_product):
        assert RecipeCatalog(db_session).recipe_for(untracked_product.id) == []

    def test_recipes_for_groups_by_product(self, db_session):
        flour = make_ingredient(db_session, name="Flour")
        egg = make_ingredient(db_session, name="Egg", unit="unit")
        pasta = make_product(db_session, name="Pasta", recipe=[(flour, "0.1"), (egg, "1")])
        bread = make_product(db_session, name="Bread", recipe=[(flour, "0.5")])
        water = make_product(db_session, name="Water")

        recipes = RecipeCatalog(db_session).recipes_for([pasta.id, bread.id, water.id])

        assert sorted(recipes) == sorted([pasta.id, bread.id])
        assert [e.ingredient_id for e in recipes[pasta.id]] == sorted([flour.id, egg.id])
        assert recipes[bread.id][0].quantity_required == Decimal("0.500")

    def test_recipes_for_empty_input(self, db_session):
        assert RecipeCatalog(db_session).recipes_for([]) == {}

    def test_get_unknown_product_raises(self, db_session):
        with pytest.raises(ProductNotFoundError):
            RecipeCatalog(db_session).get_product(9999)


class TestRecipeValidation:
    """Entry validation rules."""

    def test_duplicate_ingredient_rejected(self, db_session):
        flour = make_ingredient(db_session, name="Flour")
        with pytest.raises(ValidationError) as exc_info:
            RecipeCatalog.validate_entries([entry(flour, "1"), entry(flour, "2")])
        assert exc_info.value.context["field"] == "ingredient_id"

    def test_positive_quantities_pass(self, db_session):
        flour = make_ingredient(db_session, name="Flour")
        sugar = make_ingredient(db_session, name="Sugar")
        RecipeCatalog.validate_entries([entry(flour, "0.001"), entry(sugar, "3")])


class TestRecipeMutations:
    """Add, update, remove and replace."""

    def test_add_entry(self, db_session, untracked_product):
        lemon = make_ingredient(db_session, name="Lemon", unit="unit")
        catalog = RecipeCatalog(db_session)

        added = catalog.add_entry(untracked_product.id, entry(lemon, "0.5"))
        db_session.commit()

        assert added.id is not None
        assert [e.ingredient_id for e in catalog.recipe_for(untracked_product.id)] == [lemon.id]

    def test_add_duplicate_entry_raises(self, db_session, pizza_setup):
        ingredient, product = pizza_setup
        with pytest.raises(DuplicateEntityError):
            RecipeCatalog(db_session).add_entry(product.id, entry(ingredient, "1"))

    def test_add_entry_unknown_ingredient_raises(self, db_session, untracked_product):
        with pytest.raises(IngredientNotFoundError):
            RecipeCatalog(db_session).add_entry(
                untracked_product.id,
                RecipeEntryInput(ingredient_id=4242, quantity_required=Decimal("1")),
            )

    def test_update_entry_quantity(self, db_session, pizza_setup):
        ingredient, product = pizza_setup
        updated = RecipeCatalog(db_session).update_entry(product.id, ingredient.id, Decimal("2.5"))
        assert updated.quantity_required == Decimal("2.500")

    def test_update_entry_non_positive_rejected(self, db_session, pizza_setup):
        ingredient, product = pizza_setup
        with pytest.raises(ValidationError):
            RecipeCatalog(db_session).update_entry(product.id, ingredient.id, Decimal("0"))

    def test_remove_entry(self, db_session, pizza_setup):
        ingredient, product = pizza_setup
        catalog = RecipeCatalog(db_session)
        catalog.remove_entry(product.id, ingredient.id)
        db_session.commit()
        assert catalog.recipe_for(product.id) == []

    def test_remove_missing_entry_raises(self, db_session, untracked_product):
        with pytest.raises(NotFoundError):
            RecipeCatalog(db_session).remove_entry(untracked_product.id, 1)

    def test_replace_recipe_with_empty_list_untracks(self, db_session, pizza_setup):
        _, product = pizza_setup
        catalog = RecipeCatalog(db_session)
        assert catalog.replace_recipe(product.id, []) == []
        assert catalog.recipe_for(product.id) == []

    def test_create_product(self, db_session):
        product = RecipeCatalog(db_session).create_product(
            ProductCreate(name="  Lemonade ", price_cents=350), actor_id="manager-1"
        )
        assert product.id is not None
        assert product.name == "Lemonade"
        assert product.created_by == "manager-1"


class TestBulkReplace:
    """Per-product outcomes with savepoints."""

    def test_bulk_replace_reports_each_product(self, db_session, pizza_setup):
        ingredient, pizza = pizza_setup
        basil = make_ingredient(db_session, name="Basil")
        salad = make_product(db_session, name="Salad")

        results = RecipeCatalog(db_session).bulk_replace(
            [
                BulkRecipeItem(product_id=pizza.id, entries=[entry(ingredient, "1"), entry(basil, "0.01")]),
                BulkRecipeItem(product_id=salad.id, entries=[entry(basil, "0.2"), entry(basil, "0.3")]),
                BulkRecipeItem(product_id=777, entries=[entry(basil, "1")]),
            ]
        )
        db_session.commit()

        assert [r.success for r in results] == [True, False, False]
        assert results[0].entries == 2
        assert results[1].code == "validation_error"
        assert results[2].code == "not_found"

    def test_failed_product_keeps_previous_recipe(self, db_session, pizza_setup):
        ingredient, pizza = pizza_setup

        results = RecipeCatalog(db_session).bulk_replace(
            [BulkRecipeItem(product_id=pizza.id, entries=[entry(ingredient, "1"), entry(ingredient, "1")])]
        )
        db_session.commit()

        assert results[0].success is False
        rows = db_session.scalars(
            select(ProductIngredient).where(ProductIngredient.product_id == pizza.id)
        ).all()
        assert [(r.ingredient_id, r.quantity_required) for r in rows] == [(ingredient.id, Decimal("2.000"))]
