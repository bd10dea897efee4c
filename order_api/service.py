"""Order operations.

Each public method is one API operation. Failures are raised as
OrderServiceError subclasses; anything unexpected from the store is logged
and wrapped in StoreError with an operation-specific message.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .errors import (
    OrderNotFoundError,
    OrderServiceError,
    StoreError,
    ValidationFailedError,
)
from .lifecycle import apply_defaults, assign_tracking_id, merge_update
from .models import (
    Order,
    OrderCreateRequest,
    OrderListQuery,
    OrderPage,
    OrderUpdateRequest,
)
from .repository import OrderRepository

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(message: str):
    """Wrap unexpected failures in StoreError, letting domain errors through."""
    try:
        yield
    except OrderServiceError:
        raise
    except Exception as exc:
        logger.exception(message)
        raise StoreError(message, detail=exc) from exc


def _to_order(data: Dict[str, Any]) -> Order:
    try:
        return Order(**data)
    except ValidationError as exc:
        raise ValidationFailedError(
            "Order validation failed",
            detail=[e.get("msg") for e in exc.errors()],
        ) from exc


class OrderService:
    """Order query and lifecycle operations over an OrderRepository."""

    def __init__(self, repository: OrderRepository):
        self._repository = repository

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_orders(self, query: OrderListQuery) -> OrderPage:
        with _store_errors("Error retrieving orders"):
            items, total = self._repository.find(query)
            return OrderPage(
                items=[Order(**item) for item in items],
                total=total,
                page=query.page,
                limit=query.limit,
            )

    def get_order(self, order_id: str) -> Order:
        with _store_errors("Error retrieving order"):
            return Order(**self._load(order_id))

    def get_order_by_tracking_id(self, tracking_id: str) -> Order:
        with _store_errors("Error retrieving order"):
            data = self._repository.get_by_tracking_id(tracking_id)
            if data is None:
                raise OrderNotFoundError("Order not found with this tracking ID")
            return Order(**data)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_order(self, payload: OrderCreateRequest) -> Order:
        fields = payload.dict(exclude_unset=True)
        if not fields.get("customerName") or fields.get("orderTotal") is None:
            raise ValidationFailedError("Customer name and order total are required")

        with _store_errors("Error creating order"):
            doc = apply_defaults(fields, now=datetime.now(timezone.utc))
            assign_tracking_id(doc)
            created = self._repository.insert(doc)
            return _to_order(created)

    def update_order(self, order_id: str, payload: OrderUpdateRequest) -> Order:
        changes = payload.dict(exclude_unset=True)

        with _store_errors("Error updating order"):
            existing = self._load(order_id)
            merged = merge_update(existing, changes)
            # Validate before writing: a null orderTotal must not reach the store
            _to_order(merged)
            updated = self._repository.replace(
                order_id, merged, previous_tracking_id=existing.get("trackingId")
            )
            return _to_order(updated)

    def update_order_action(self, order_id: str, action: Optional[str]) -> Order:
        if not action:
            raise ValidationFailedError("Action is required")
        return self._patch(order_id, "action", action, "Error updating order action")

    def update_order_status(self, order_id: str, status: Optional[str]) -> Order:
        if not status:
            raise ValidationFailedError("Status is required")
        return self._patch(order_id, "status", status, "Error updating order status")

    def delete_order(self, order_id: str) -> None:
        with _store_errors("Error deleting order"):
            existing = self._load(order_id)
            self._repository.delete(order_id, tracking_id=existing.get("trackingId"))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, order_id: str) -> Dict[str, Any]:
        data = self._repository.get(order_id)
        if data is None:
            raise OrderNotFoundError()
        return data

    def _patch(self, order_id: str, field: str, value: str, failure_message: str) -> Order:
        with _store_errors(failure_message):
            existing = self._load(order_id)
            updated = self._repository.replace(
                order_id, {**existing, field: value},
                previous_tracking_id=existing.get("trackingId"),
            )
            return _to_order(updated)
