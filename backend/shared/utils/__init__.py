"""
Utilities module: Exceptions, validators, schemas.
"""

from shared.utils.exceptions import (
    AppException,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    InvalidTransitionError,
    InsufficientStockError,
    ConflictError,
)
from shared.utils.validators import (
    escape_like_pattern,
    sanitize_search_term,
    quantize_stock,
    round_cents,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "AppException",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "InvalidTransitionError",
    "InsufficientStockError",
    "ConflictError",
    # validators
    "escape_like_pattern",
    "sanitize_search_term",
    "quantize_stock",
    "round_cents",
    # schemas
    "ErrorResponse",
]
