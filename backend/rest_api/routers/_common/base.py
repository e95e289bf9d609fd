"""
Shared router dependencies.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from shared.config.settings import get_settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import NotificationPublisher, get_notification_publisher
from rest_api.services.domain import StatusSynchronizer


def get_synchronizer(
    db: Session = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
) -> StatusSynchronizer:
    """FastAPI dependency building the order request-boundary service."""
    return StatusSynchronizer(db, publisher, settings=get_settings())
