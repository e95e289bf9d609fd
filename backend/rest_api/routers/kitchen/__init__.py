"""
Kitchen routers - /api/kitchen/*
Kitchen display queue.
"""

from .orders import router

__all__ = ["router"]
