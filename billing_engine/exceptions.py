"""
Domain exceptions for the billing engine.

Every error carries the HTTP status code and a stable error code so the API
layer can translate it without knowing the concrete class.

ValidationError here is the business-rule error (bad line item, percentage out
of range). It is distinct from pydantic.ValidationError, which signals a
malformed payload at model construction.
"""

from typing import Any, Dict, Optional

__all__ = [
    "BillingError",
    "StoreUnavailable",
    "ValidationError",
    "InvalidTransition",
    "NotFoundError",
]


class BillingError(Exception):
    """Base class for all billing engine errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error_code": self.error_code, "detail": self.detail}
        if self.extra:
            payload["extra"] = self.extra
        return payload


class StoreUnavailable(BillingError):
    """The counter store could not be reached."""

    status_code = 503
    error_code = "STORE_UNAVAILABLE"


class ValidationError(BillingError):
    """Line item or rate values violate a business rule."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class InvalidTransition(BillingError):
    """The requested lifecycle action is not allowed from the current status."""

    status_code = 409
    error_code = "INVALID_TRANSITION"

    def __init__(self, action: str, status: str, document_kind: str = "document") -> None:
        super().__init__(
            f"Cannot {action} a {document_kind} with status '{status}'",
            extra={"action": action, "status": status},
        )
        self.action = action
        self.status = status


class NotFoundError(BillingError):
    status_code = 404
    error_code = "NOT_FOUND"
