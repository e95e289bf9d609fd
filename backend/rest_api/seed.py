"""
Seed data for development and testing.
Creates a small demo menu: ingredients with opening stock, products and recipes.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.config.logging import get_logger
from shared.infrastructure.db import unit_of_work
from shared.utils.schemas import IngredientCreate, ProductCreate, RecipeEntryInput
from rest_api.models import Product
from rest_api.services.domain import IngredientLedger, RecipeCatalog

logger = get_logger(__name__)

SEED_ACTOR = "seed"

# name, unit, opening stock, minimum stock, unit cost in cents
DEMO_INGREDIENTS = [
    ("Pizza dough", "unit", "40", "10", 120),
    ("Tomato sauce", "kg", "8", "2", 450),
    ("Mozzarella", "kg", "6", "1.5", 980),
    ("Basil", "kg", "0.5", "0.1", 2400),
    ("Beef patty", "unit", "30", "8", 310),
    ("Burger bun", "unit", "30", "8", 60),
    ("Cheddar", "kg", "3", "0.5", 1100),
    ("Coffee beans", "kg", "4", "1", 2200),
    ("Milk", "l", "12", "3", 130),
]

# name, price in cents, recipe as (ingredient name, quantity per unit)
DEMO_PRODUCTS = [
    (
        "Margherita pizza",
        1250,
        [("Pizza dough", "1"), ("Tomato sauce", "0.12"), ("Mozzarella", "0.15"), ("Basil", "0.005")],
    ),
    (
        "Cheeseburger",
        1100,
        [("Beef patty", "1"), ("Burger bun", "1"), ("Cheddar", "0.03")],
    ),
    (
        "Double cheeseburger",
        1450,
        [("Beef patty", "2"), ("Burger bun", "1"), ("Cheddar", "0.06")],
    ),
    ("Latte", 450, [("Coffee beans", "0.018"), ("Milk", "0.25")]),
    # Not stock-tracked
    ("Sparkling water", 300, []),
]


def seed(db: Session) -> bool:
    """
    Insert the demo menu.
    Idempotent: only inserts if no product exists yet. Returns True if data was added.
    """
    if db.scalar(select(Product.id).limit(1)) is not None:
        logger.info("Demo data already seeded, skipping")
        return False

    logger.info("Seeding demo menu")
    ledger = IngredientLedger(db)
    catalog = RecipeCatalog(db)

    with unit_of_work(db):
        ingredients = {}
        for name, unit, stock, minimum, cost in DEMO_INGREDIENTS:
            ingredient = ledger.create_ingredient(
                IngredientCreate(
                    name=name,
                    unit=unit,
                    current_stock=Decimal(stock),
                    minimum_stock=Decimal(minimum),
                    unit_cost_cents=cost,
                ),
                actor_id=SEED_ACTOR,
            )
            ingredients[name] = ingredient

        for name, price, recipe in DEMO_PRODUCTS:
            product = catalog.create_product(
                ProductCreate(name=name, price_cents=price),
                actor_id=SEED_ACTOR,
            )
            catalog.replace_recipe(
                product.id,
                [
                    RecipeEntryInput(ingredient_id=ingredients[ingredient].id, quantity_required=Decimal(qty))
                    for ingredient, qty in recipe
                ],
            )

    logger.info(
        "Demo menu seeded",
        ingredients=len(DEMO_INGREDIENTS),
        products=len(DEMO_PRODUCTS),
    )
    return True
