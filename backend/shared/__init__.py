"""
Shared module for code used by the REST API, the CLI and the tests.

STRUCTURE:
- shared.security: Actor identity
  - auth.py: X-Actor-Id / X-Actor-Role parsing, current_actor dependency

- shared.infrastructure: Database and notifications
  - db.py: SQLAlchemy sessions, unit_of_work()
  - correlation.py: Request correlation ids
  - events/: Notification events, Redis and in-memory publishers

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Roles, OrderStatus, ItemStatus, StockOperation

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Stock quantization, cents rounding, search sanitizing
  - schemas.py: Request and response Pydantic schemas
  - health.py: Dependency health checks

IMPORT EXAMPLES:
    from shared.security.auth import ActorContext, current_actor
    from shared.infrastructure.db import get_db, unit_of_work
    from shared.config.settings import settings
    from shared.config.constants import Roles, OrderStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
    from shared.utils.validators import quantize_stock
"""
