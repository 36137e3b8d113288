"""
Cart error taxonomy.

Validation and inventory errors are surfaced to the caller. Persistence
errors are logged and swallowed by the engine. Merge conflicts are resolved
by capping unless strict merging is enabled.
"""
from fastapi import HTTPException, status


class CartError(Exception):
    """Base class for all cart and design errors."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CartError):
    """Malformed input. The operation is rejected without mutation."""
    status_code = status.HTTP_400_BAD_REQUEST


class InventoryError(CartError):
    """Item unavailable, inactive, or insufficient stock."""
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(CartError):
    """Missing line item or history entry."""
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(CartError):
    """Storage backend failure."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class MergeConflictError(CartError):
    """Guest/identity merge exceeded the per-item quantity cap."""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, catalog_id: str, requested: int, allowed: int):
        super().__init__(message)
        self.catalog_id = catalog_id
        self.requested = requested
        self.allowed = allowed


def to_http_exception(error: CartError) -> HTTPException:
    """Translate a cart error into the API error response."""
    return HTTPException(status_code=error.status_code, detail=error.message)
