"""Orders router - list, look up, create, update, patch and delete orders.

Endpoints (mounted under /api/orders):
    GET    /                     - List with search, filters, sorting, pagination
    GET    /track/{tracking_id}  - Look up by tracking ID
    GET    /{order_id}           - Look up by ID
    POST   /                     - Create
    PUT    /{order_id}           - Update sent fields
    PATCH  /{order_id}/action    - Update fulfillment action only
    PATCH  /{order_id}/status    - Update record status only
    DELETE /{order_id}           - Delete permanently

Every response uses the {success, data, message, ...} envelope. Domain
errors raised by the service are turned into envelopes by the handlers
registered in main.py.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, Request

from ..dependencies import get_order_service
from ..middleware.rate_limit import rate_limit_write
from ..models import (
    OrderActionRequest,
    OrderCreateRequest,
    OrderListQuery,
    OrderStatusRequest,
    OrderUpdateRequest,
)
from ..service import OrderService


router = APIRouter()


@router.get("")
async def list_orders(
    request: Request,
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    limit: int = Query(10, ge=1, description="Orders per page"),
    sortBy: str = Query("createdAt", description="Field to sort on"),
    sortOrder: str = Query("desc", description="'asc' or 'desc'"),
    search: Optional[str] = Query(None, description="Matches name, tracking ID or email"),
    action: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    orderType: Optional[str] = Query(None),
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Get all orders with filtering, sorting, and pagination."""
    query = OrderListQuery(
        page=page,
        limit=limit,
        sortBy=sortBy,
        sortOrder=sortOrder,
        search=search,
        action=action,
        status=status,
        orderType=orderType,
    )
    result = service.list_orders(query)

    return {
        "success": True,
        "count": len(result.items),
        "total": result.total,
        "page": result.page,
        "pages": result.pages,
        "data": result.items,
    }


@router.get("/track/{tracking_id}")
async def get_order_by_tracking_id(
    tracking_id: str,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Get an order by its tracking ID (exact match)."""
    order = service.get_order_by_tracking_id(tracking_id)
    return {"success": True, "data": order}


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Get an order by ID."""
    order = service.get_order(order_id)
    return {"success": True, "data": order}


@router.post("", status_code=201)
@rate_limit_write
async def create_order(
    request: Request,
    payload: OrderCreateRequest,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Create a new order, generating a tracking ID when none is sent."""
    order = service.create_order(payload)
    return {
        "success": True,
        "message": "Order created successfully",
        "data": order,
    }


@router.put("/{order_id}")
@rate_limit_write
async def update_order(
    request: Request,
    order_id: str,
    payload: OrderUpdateRequest,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Update the fields sent in the body."""
    order = service.update_order(order_id, payload)
    return {
        "success": True,
        "message": "Order updated successfully",
        "data": order,
    }


@router.patch("/{order_id}/action")
@rate_limit_write
async def update_order_action(
    request: Request,
    order_id: str,
    payload: Optional[OrderActionRequest] = None,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Set the fulfillment action. Any action may follow any other."""
    order = service.update_order_action(order_id, payload.action if payload else None)
    return {
        "success": True,
        "message": "Order action updated successfully",
        "data": order,
    }


@router.patch("/{order_id}/status")
@rate_limit_write
async def update_order_status(
    request: Request,
    order_id: str,
    payload: Optional[OrderStatusRequest] = None,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Set the record status."""
    order = service.update_order_status(order_id, payload.status if payload else None)
    return {
        "success": True,
        "message": "Order status updated successfully",
        "data": order,
    }


@router.delete("/{order_id}")
@rate_limit_write
async def delete_order(
    request: Request,
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Delete an order permanently."""
    service.delete_order(order_id)
    return {
        "success": True,
        "message": "Order deleted successfully",
    }
