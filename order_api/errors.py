"""Domain errors raised by the order service.

Each error carries the machine-readable code and HTTP status it maps to.
The exception handlers in main.py turn them into the response envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class OrderServiceError(Exception):
    """Base class for failures reported to API callers."""

    code = "INTERNAL"
    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationFailedError(OrderServiceError):
    """Required input missing or malformed."""

    code = "VALIDATION_FAILED"
    status_code = 400
    default_message = "Validation failed"


class DuplicateTrackingIdError(OrderServiceError):
    """Another order already owns the tracking ID."""

    code = "DUPLICATE_TRACKING_ID"
    status_code = 400
    default_message = "Tracking ID already exists"


class OrderNotFoundError(OrderServiceError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Order not found"


class StoreError(OrderServiceError):
    """Unclassified store or runtime failure."""

    code = "INTERNAL"
    status_code = 500
    default_message = "Error accessing orders"


def error_envelope(error: OrderServiceError, show_detail: bool) -> Dict[str, Any]:
    """Build the failure envelope for a domain error.

    Internal failures only expose the underlying error text when
    show_detail is set (non-production).
    """
    body: Dict[str, Any] = {
        "success": False,
        "message": error.message,
        "code": error.code,
    }
    if error.status_code >= 500:
        body["error"] = str(error.detail) if show_detail and error.detail is not None else {}
    elif error.detail is not None:
        body["error"] = error.detail
    return body
