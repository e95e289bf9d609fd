"""
Content routers - menu products and their recipes.
- /api/products/* - Minimal product catalog
- /api/recipes/* - Recipe entries, bulk replace and availability
"""

from .products import router as products_router
from .recipes import router as recipes_router

__all__ = [
    "products_router",
    "recipes_router",
]
