"""Order entity lifecycle rules.

Default values, tracking ID generation and the partial-update merge are
plain functions so they can be exercised without a store.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime
from typing import Any, Dict, Optional


TRACKING_ID_PREFIX = "ORD"
TRACKING_RANDOM_LENGTH = 5
BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Stored as explicit nulls when unset: Firestore omits documents that lack
# an order_by field, and any of these may be used as sortBy
OPTIONAL_FIELDS = (
    "description",
    "customerEmail",
    "customerPhone",
    "shippingAddress",
)

ORDER_DEFAULTS = {
    "orderType": "online",
    "action": "pending",
    "status": "active",
}

# PUT /orders/{id}: these fields are only overwritten by a truthy value
TRUTHY_UPDATE_FIELDS = (
    "customerName",
    "orderDate",
    "orderType",
    "trackingId",
    "action",
    "status",
    "shippingAddress",
)

# ...while these are overwritten whenever they are sent, even as 0 or ""
PRESENT_UPDATE_FIELDS = (
    "orderTotal",
    "description",
    "customerEmail",
    "customerPhone",
)


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_tracking_id(timestamp_ms: Optional[int] = None) -> str:
    """Build a tracking ID like ORD-MGX3K2P1-4F9QZ.

    The middle part is the creation time in base 36, the last part five
    random base 36 characters.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(TRACKING_RANDOM_LENGTH))
    return f"{TRACKING_ID_PREFIX}-{to_base36(timestamp_ms)}-{suffix}".upper()


def apply_defaults(fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Return a new order document with defaults filled in.

    Missing or empty values take the default. Optional fields that were
    not sent are stored as None; other None values are dropped.
    """
    doc = dict(fields)
    for name, default in ORDER_DEFAULTS.items():
        if not doc.get(name):
            doc[name] = default
    if not doc.get("orderDate"):
        doc["orderDate"] = now
    doc = {name: value for name, value in doc.items() if value is not None}
    for name in OPTIONAL_FIELDS:
        doc.setdefault(name, None)
    return doc


def assign_tracking_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Give the document a generated tracking ID unless it already has one."""
    if not doc.get("trackingId"):
        doc["trackingId"] = generate_tracking_id()
    return doc


def merge_update(existing: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay sent fields on an existing order document."""
    merged = dict(existing)
    for name in TRUTHY_UPDATE_FIELDS:
        value = changes.get(name)
        if value:
            merged[name] = value
    for name in PRESENT_UPDATE_FIELDS:
        if name in changes:
            merged[name] = changes[name]
    return merged
