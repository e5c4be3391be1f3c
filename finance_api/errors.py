"""
Domain errors.

Services raise these; the app turns them into JSON responses of the form
``{"error": <code>, "detail": <message>}`` with the status code carried by
the exception class.
"""

from typing import Any, Optional


class FinanceError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, detail: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        body = {"error": self.code, "detail": self.detail}
        body.update(self.extra)
        return body


class ValidationError(FinanceError):
    """Malformed or missing input."""

    status_code = 400
    code = "validation_error"


class NotFoundError(FinanceError):
    """Entity absent, or owned by another user."""

    status_code = 404
    code = "not_found"


class ConflictError(FinanceError):
    """Duplicate category name, or deleting an in-use/default category."""

    status_code = 409
    code = "conflict"


class InsufficientBalanceError(FinanceError):
    status_code = 422
    code = "insufficient_balance"

    def __init__(self, balance: float, required: float):
        super().__init__(
            f"Insufficient balance: {balance:.2f} available, {required:.2f} required",
            extra={"balance": balance, "required": required},
        )
        self.balance = balance
        self.required = required


class PersistenceError(FinanceError):
    """Storage unavailable or commit failed; nothing was written."""

    status_code = 503
    code = "persistence_error"
