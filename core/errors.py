"""Error taxonomy shared by the services and the HTTP layer.

Every error carries a stable machine-readable ``code``, the HTTP status it is
rendered with, a human-readable message and, for field-level failures, an
``errors`` mapping of field name to messages.
"""
from typing import Dict, List, Optional


class AppError(Exception):
    code: str = "internal_error"
    status_code: int = 500
    retryable: bool = False
    default_message: str = "Something went wrong."

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "code": self.code, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFound(AppError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class Unauthorized(AppError):
    code = "unauthorized"
    status_code = 403
    default_message = "You are not allowed to pay for this order"


class AlreadySettled(AppError):
    code = "already_settled"
    status_code = 409
    default_message = "This order has already been fully paid"


class NoRemainingBalance(AppError):
    code = "no_remaining_balance"
    status_code = 409
    default_message = "This order has no remaining balance"


class DuplicateReference(AppError):
    code = "duplicate_reference"
    status_code = 409
    default_message = "The transaction id has already been used"


class ValidationFailed(AppError):
    code = "validation_failed"
    status_code = 422
    default_message = "Validation failed"


class StorageUnavailable(AppError):
    code = "storage_unavailable"
    status_code = 503
    retryable = True
    default_message = "The payment could not be recorded, please retry"


class Timeout(AppError):
    code = "timeout"
    status_code = 503
    retryable = True
    default_message = "The order is busy with another payment, please retry"
