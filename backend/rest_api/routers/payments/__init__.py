"""
Payment routers - /api/payments/*
Completion reported by the payment collaborator.
"""

from .routes import router

__all__ = ["router"]
