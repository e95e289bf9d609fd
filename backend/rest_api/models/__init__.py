"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class and AuditMixin
- catalog: Product
- ingredient: Ingredient, IngredientHistory
- recipe: ProductIngredient
- order: Order, OrderItem, OrderStatusHistory, OrderSequence
"""

# Base classes
from .base import Base, AuditMixin, utcnow

# Catalog
from .catalog import Product

# Inventory
from .ingredient import Ingredient, IngredientHistory

# Recipes
from .recipe import ProductIngredient

# Orders
from .order import Order, OrderItem, OrderSequence, OrderStatusHistory

__all__ = [
    "Base",
    "AuditMixin",
    "utcnow",
    "Product",
    "Ingredient",
    "IngredientHistory",
    "ProductIngredient",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderSequence",
]
