# backend/app/core/errors.py

"""
Typed errors for the inventory service.

Services raise these instead of HTTPException so the same rules apply no
matter who calls them (routes, seed scripts, tests). ``app.main`` registers a
handler that turns any ``InventoryError`` into a JSON response:

    {"detail": <message>, "code": <code>, ...extra}

    InventoryError
    +-- ValidationError        422  rule broken at the write boundary
    +-- NotFoundError          404  referenced entity missing
    +-- InsufficientStockError 409  exit larger than available stock
    +-- ConflictError          409  duplicate unique value (e.g. email)
    +-- StorageError           503  database write failed, nothing committed
    +-- PartialFailureError    500  multi-step write partially committed
    +-- AuthError              401  session missing, expired or inactive
    +-- PermissionDeniedError  403  role-gated action without privilege
"""

from typing import Any, Optional


class InventoryError(Exception):
    code: str = "INVENTORY_ERROR"
    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


class ValidationError(InventoryError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        if field is not None:
            super().__init__(message, field=field)
        else:
            super().__init__(message)
        self.field = field


class NotFoundError(InventoryError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class ConflictError(InventoryError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Already exists"


class StorageError(InventoryError):
    code = "STORAGE_ERROR"
    status_code = 503
    default_message = "The change could not be saved"


class PartialFailureError(InventoryError):
    """Some steps were committed and others were not.

    Retrying is unsafe: the caller has to check the current state first.
    """

    code = "PARTIAL_FAILURE"
    status_code = 500
    default_message = "The operation was only partially applied; verify the current state before retrying"

    def __init__(self, message: Optional[str] = None, *, completed: list[str], failed: str):
        super().__init__(message, completed=completed, failed=failed)
        self.completed = completed
        self.failed = failed


class AuthError(InventoryError):
    code = "AUTH_ERROR"
    status_code = 401
    default_message = "Not authenticated"


class PermissionDeniedError(InventoryError):
    code = "PERMISSION_DENIED"
    status_code = 403
    default_message = "Permission denied"
