"""
Order routers - /api/orders/*
Order submission, status transitions, item edits and status history.
"""

from .routes import router

__all__ = ["router"]
