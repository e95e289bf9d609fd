"""
Centralized HTTP exceptions for consistent error handling.

Every error carries a stable machine-readable ``code`` and a ``context`` dict
that the API error handler renders next to ``detail``.

Usage:
    from shared.utils.exceptions import NotFoundError, InvalidTransitionError

    raise NotFoundError("Order", order_id)
    raise InvalidTransitionError("pending", "ready")
    raise InsufficientStockError(ingredient.id, ingredient.name, needed, available)
"""

from decimal import Decimal
from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions inherit from this class to ensure consistent
    logging and response format.
    """

    code: str = "error"

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        context: dict[str, Any] | None = None,
        **log_context: Any,
    ):
        self.context = context or {}

        # Log the error with context
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, code=self.code, **self.context, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_dict(self) -> dict[str, Any]:
        """Response body: detail, code and public context."""
        return {"detail": self.detail, "code": self.code, **self.context}


# =============================================================================
# 401 / 403 Errors (authorization boundary)
# =============================================================================


class AuthenticationError(AppException):
    """Missing or malformed actor identity (401)."""

    code = "unauthenticated"

    def __init__(self, reason: str = "Actor identity required", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=reason,
            log_level="warning",
            **log_context,
        )


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("cancel orders", role="KITCHEN")
    """

    code = "forbidden"

    def __init__(self, action: str | None = None, role: str | None = None, **log_context: Any):
        if action:
            detail = f"Not authorized to {action}"
        else:
            detail = "Access denied"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            context={"role": role} if role else None,
            action=action,
            **log_context,
        )


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Product", 123)
        raise NotFoundError("Order item", item_id, order_id=order_id)
    """

    code = "not_found"

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            context={"entity": entity, "entity_id": entity_id},
            **log_context,
        )


class OrderNotFoundError(NotFoundError):
    """Order not found."""

    def __init__(self, order_id: int | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class IngredientNotFoundError(NotFoundError):
    """Ingredient not found."""

    def __init__(self, ingredient_id: int | None = None, **log_context: Any):
        super().__init__("Ingredient", ingredient_id, **log_context)


class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: int | None = None, **log_context: Any):
        super().__init__("Product", product_id, **log_context)


# =============================================================================
# 400 Validation Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("table_ref is required for dine_in orders", field="table_ref")
    """

    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
            log_level="info",
            context={"field": field} if field else None,
            **log_context,
        )


class DuplicateEntityError(ValidationError):
    """Entity already exists."""

    def __init__(self, entity: str, field: str, value: Any, **log_context: Any):
        super().__init__(
            f"{entity} with {field} '{value}' already exists",
            field=field,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class InvalidTransitionError(AppException):
    """
    Requested status change is not an allowed edge (409).

    Usage:
        raise InvalidTransitionError("pending", "ready", order_id=order.id)
    """

    code = "invalid_transition"

    def __init__(self, current: str, requested: str, reason: str | None = None, **log_context: Any):
        detail = f"Cannot transition from '{current}' to '{requested}'"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="info",
            context={"current_status": current, "requested_status": requested},
            **log_context,
        )
        self.current = current
        self.requested = requested


class InsufficientStockError(AppException):
    """
    One or more ingredients cannot cover the demand of an order (409).

    The first short ingredient (by id) is reported at the top level;
    ``missing`` lists every short ingredient with its shortage.
    Nothing was written when this is raised.
    """

    code = "insufficient_stock"

    def __init__(
        self,
        ingredient_id: int,
        ingredient_name: str,
        needed: Decimal,
        available: Decimal,
        missing: list[dict[str, Any]] | None = None,
        **log_context: Any,
    ):
        if missing is None:
            missing = [
                {
                    "ingredient_id": ingredient_id,
                    "ingredient": ingredient_name,
                    "has": str(available),
                    "needs": str(needed),
                    "shortage": str(needed - available),
                }
            ]
        detail = f"Insufficient stock for {ingredient_name}: needed {needed}, available {available}"
        if len(missing) > 1:
            detail += f" (and {len(missing) - 1} more ingredient(s) short)"

        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="info",
            context={
                "ingredient_id": ingredient_id,
                "ingredient": ingredient_name,
                "needed": str(needed),
                "available": str(available),
                "missing": missing,
            },
            **log_context,
        )
        self.ingredient_id = ingredient_id
        self.ingredient_name = ingredient_name
        self.needed = needed
        self.available = available
        self.missing = missing


class ConflictError(AppException):
    """
    Optimistic concurrency failure (409): the order changed since the
    client last read it.
    """

    code = "version_conflict"

    def __init__(
        self,
        message: str = "Order was modified by another request",
        expected_version: int | None = None,
        actual_version: int | None = None,
        **log_context: Any,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=message,
            log_level="info",
            context={"expected_version": expected_version, "actual_version": actual_version},
            **log_context,
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class OrderNumberConflictError(AppException):
    """No unique order number could be drawn after retrying (409)."""

    code = "order_number_conflict"

    def __init__(self, attempts: int, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="Could not allocate an order number, please retry",
            log_level="warning",
            context={"attempts": attempts},
            **log_context,
        )
        self.attempts = attempts
