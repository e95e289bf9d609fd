"""
Inventory routers - /api/inventory/*
Ingredient stock, low-stock listing, ledger history and manual adjustments.
"""

from .routes import router

__all__ = ["router"]
