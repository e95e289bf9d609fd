"""
Infrastructure module: Database sessions and notification events.

Provides:
- Database sessions and transactions (db.py)
- Request correlation ids (correlation.py)
- Notification publishing (events/)
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    get_db,
    get_db_context,
    unit_of_work,
)

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "unit_of_work",
]
