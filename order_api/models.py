"""Pydantic models for the Order Service API.

Field names are camelCase to match the JSON documents stored in Firestore
and exchanged with clients.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional, Any
from pydantic import BaseModel, Field, validator


# =============================================================================
# ENUMERATED VALUES
# =============================================================================

ORDER_TYPES = ("online", "offline", "phone", "email")
ORDER_ACTIONS = ("pending", "processing", "shipped", "delivered", "cancelled", "returned")
ORDER_STATUSES = ("active", "inactive", "completed")
SORT_ORDERS = ("asc", "desc")


def _one_of(values) -> str:
    return "^(" + "|".join(values) + ")$"


ORDER_TYPE_PATTERN = _one_of(ORDER_TYPES)
ORDER_ACTION_PATTERN = _one_of(ORDER_ACTIONS)
ORDER_STATUS_PATTERN = _one_of(ORDER_STATUSES)


# =============================================================================
# INPUT VALIDATION PATTERNS
# =============================================================================

EMAIL_PATTERN = re.compile(r'^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$')

CUSTOMER_NAME_MAX = 100
DESCRIPTION_MAX = 500


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


# =============================================================================
# ORDER MODELS
# =============================================================================

class ShippingAddress(BaseModel):
    """Postal address an order ships to. Every part is optional."""
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None


class Order(BaseModel):
    """Full order document (mirrors Firestore structure)."""
    id: str
    customerName: str = Field(..., min_length=1, max_length=CUSTOMER_NAME_MAX)
    orderDate: datetime
    orderType: str = Field(..., pattern=ORDER_TYPE_PATTERN)
    trackingId: str = Field(..., min_length=1)
    orderTotal: float = Field(..., ge=0)
    action: str = Field(..., pattern=ORDER_ACTION_PATTERN)
    status: str = Field(..., pattern=ORDER_STATUS_PATTERN)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX)
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    shippingAddress: Optional[ShippingAddress] = None
    createdAt: datetime
    updatedAt: datetime


# =============================================================================
# REQUEST MODELS (Input Validation)
# =============================================================================

class OrderCreateRequest(BaseModel):
    """Request to create a new order.

    Every field is optional at this layer; the service decides which ones
    are required and fills in defaults.
    """
    customerName: Optional[str] = Field(None, max_length=CUSTOMER_NAME_MAX)
    orderDate: Optional[datetime] = None
    orderType: Optional[str] = Field(None, pattern=ORDER_TYPE_PATTERN)
    trackingId: Optional[str] = None
    orderTotal: Optional[float] = Field(None, ge=0)
    action: Optional[str] = Field(None, pattern=ORDER_ACTION_PATTERN)
    status: Optional[str] = Field(None, pattern=ORDER_STATUS_PATTERN)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX)
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    shippingAddress: Optional[ShippingAddress] = None

    @validator('orderDate', 'orderType', 'action', 'status', pre=True)
    def blank_to_none(cls, v):
        # "" means "not sent": defaults apply on create, no change on update
        return None if v == "" else v

    @validator('customerName', 'description', 'customerPhone', pre=True)
    def strip_text(cls, v):
        return _strip(v)

    @validator('trackingId', pre=True)
    def normalize_tracking_id(cls, v):
        v = _strip(v)
        return v.upper() if isinstance(v, str) else v

    @validator('customerEmail', pre=True)
    def normalize_email(cls, v):
        v = _strip(v)
        return v.lower() if isinstance(v, str) else v

    @validator('customerEmail')
    def validate_email(cls, v):
        # Empty string clears the address and is allowed
        if v and not EMAIL_PATTERN.match(v):
            raise ValueError('Please add a valid email')
        return v


class OrderUpdateRequest(OrderCreateRequest):
    """Request to update an existing order.

    Same fields as creation. Which fields were actually sent matters, so
    the service reads it with exclude_unset.
    """


class OrderActionRequest(BaseModel):
    """Request body for PATCH /orders/{id}/action."""
    action: Optional[str] = Field(None, pattern=ORDER_ACTION_PATTERN)

    @validator('action', pre=True)
    def blank_to_none(cls, v):
        return None if v == "" else v


class OrderStatusRequest(BaseModel):
    """Request body for PATCH /orders/{id}/status."""
    status: Optional[str] = Field(None, pattern=ORDER_STATUS_PATTERN)

    @validator('status', pre=True)
    def blank_to_none(cls, v):
        return None if v == "" else v


class OrderListQuery(BaseModel):
    """Normalized listing parameters."""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    sortBy: str = "createdAt"
    sortOrder: str = "desc"
    search: Optional[str] = None
    action: Optional[str] = None
    status: Optional[str] = None
    orderType: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def descending(self) -> bool:
        return self.sortOrder == "desc"

    def filters(self) -> dict:
        """Exact-match filters that were supplied, in a stable order."""
        candidates = (("action", self.action), ("status", self.status), ("orderType", self.orderType))
        return {field: value for field, value in candidates if value}


# =============================================================================
# AUTH MODELS
# =============================================================================

class SignUpRequest(BaseModel):
    """Request to register a new user."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

    @validator('name', pre=True)
    def strip_name(cls, v):
        return _strip(v)

    @validator('email', pre=True)
    def normalize_email(cls, v):
        v = _strip(v)
        return v.lower() if isinstance(v, str) else v


class SignInRequest(BaseModel):
    """Email/password credentials."""
    email: Optional[str] = None
    password: Optional[str] = None


class UserInfo(BaseModel):
    """User information returned from /auth/me."""
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    createdAt: Optional[datetime] = None


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class OrderPage(BaseModel):
    """One page of orders plus the count of all matching orders."""
    items: List[Order]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        # ceil(total / limit)
        return -(-self.total // self.limit)
