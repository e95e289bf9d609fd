"""
Common utilities shared across routers.
"""

from .base import get_synchronizer
from .pagination import Pagination, get_pagination, get_history_pagination

__all__ = [
    "get_synchronizer",
    "Pagination",
    "get_pagination",
    "get_history_pagination",
]
