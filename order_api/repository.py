"""Firestore persistence for orders.

Layout:
    orders/{autoId}                  - order documents
    orderTrackingIds/{sha256(id)}    - one document per tracking ID

Firestore has no unique indexes. Each order write that introduces a
tracking ID also creates its index document with a create-only
precondition inside the same batch, so a second order claiming the same
ID fails the whole commit with AlreadyExists.
"""

from __future__ import annotations

import hashlib
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud import firestore

from .errors import DuplicateTrackingIdError, OrderNotFoundError
from .models import OrderListQuery

# =============================================================================
# CONFIGURATION
# =============================================================================

ORDERS_COLLECTION = os.environ.get("ORDERS_COLLECTION", "orders")
TRACKING_INDEX_COLLECTION = os.environ.get("TRACKING_INDEX_COLLECTION", "orderTrackingIds")

SEARCH_FIELDS = ("customerName", "trackingId", "customerEmail")

logger = logging.getLogger(__name__)


def matches_search(order: Dict[str, Any], term: str) -> bool:
    """Case-insensitive substring match on name, tracking ID or email."""
    needle = term.casefold()
    for field in SEARCH_FIELDS:
        value = order.get(field)
        if isinstance(value, str) and needle in value.casefold():
            return True
    return False


def _tracking_key(tracking_id: str) -> str:
    # Tracking IDs are caller-supplied and may contain '/', which Firestore
    # rejects in document IDs.
    return hashlib.sha256(tracking_id.encode("utf-8")).hexdigest()


def _snapshot_to_dict(snapshot) -> Dict[str, Any]:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class OrderRepository:
    """Order reads and writes against a Firestore client."""

    def __init__(
        self,
        db: firestore.Client,
        collection: str = ORDERS_COLLECTION,
        tracking_collection: str = TRACKING_INDEX_COLLECTION,
    ):
        self._db = db
        self._collection = collection
        self._tracking_collection = tracking_collection

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------

    def _orders(self):
        return self._db.collection(self._collection)

    def _order_ref(self, order_id: str):
        return self._orders().document(order_id)

    def _tracking_ref(self, tracking_id: str):
        return self._db.collection(self._tracking_collection).document(_tracking_key(tracking_id))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find(self, query: OrderListQuery) -> Tuple[List[Dict[str, Any]], int]:
        """Return one page of matching orders and the total match count."""
        filtered = self._orders()
        for field, value in query.filters().items():
            filtered = filtered.where(field, "==", value)

        direction = firestore.Query.DESCENDING if query.descending else firestore.Query.ASCENDING
        ordered = filtered.order_by(query.sortBy, direction=direction)

        if query.search:
            # No substring operator in Firestore: match a projection of the
            # filtered stream here, then fetch only the page's documents.
            fields = list(dict.fromkeys(SEARCH_FIELDS + (query.sortBy,)))
            matched_ids = [
                s.id for s in ordered.select(fields).stream()
                if matches_search(s.to_dict() or {}, query.search)
            ]
            logger.debug(f"Search {query.search!r} matched {len(matched_ids)} orders")
            page_ids = matched_ids[query.offset:query.offset + query.limit]
            return self._get_many(page_ids), len(matched_ids)

        page = ordered.offset(query.offset).limit(query.limit)
        items = [_snapshot_to_dict(s) for s in page.stream()]
        return items, self._count(filtered)

    def _get_many(self, order_ids: List[str]) -> List[Dict[str, Any]]:
        """Fetch orders by ID, keeping the order of order_ids."""
        if not order_ids:
            return []
        refs = [self._order_ref(order_id) for order_id in order_ids]
        by_id = {s.id: s for s in self._db.get_all(refs) if s.exists}
        return [_snapshot_to_dict(by_id[i]) for i in order_ids if i in by_id]

    def _count(self, query) -> int:
        results = query.count(alias="total").get()
        for row in results:
            for aggregate in row:
                return int(aggregate.value)
        return 0

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._order_ref(order_id).get()
        if not snapshot.exists:
            return None
        return _snapshot_to_dict(snapshot)

    def get_by_tracking_id(self, tracking_id: str) -> Optional[Dict[str, Any]]:
        docs = list(self._orders().where("trackingId", "==", tracking_id).limit(1).stream())
        if not docs:
            return None
        return _snapshot_to_dict(docs[0])

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Store a new order and claim its tracking ID.

        Raises:
            DuplicateTrackingIdError if the tracking ID is taken
        """
        now = datetime.now(timezone.utc)
        doc = {**_without_id(data), "createdAt": now, "updatedAt": now}
        order_ref = self._orders().document()

        batch = self._db.batch()
        batch.create(self._tracking_ref(doc["trackingId"]), {
            "trackingId": doc["trackingId"],
            "orderId": order_ref.id,
        })
        batch.set(order_ref, doc)
        self._commit(batch)

        logger.info(f"Order {order_ref.id} created ({doc['trackingId']})")
        return {**doc, "id": order_ref.id}

    def replace(
        self,
        order_id: str,
        data: Dict[str, Any],
        previous_tracking_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Overwrite an order, moving its tracking ID claim if it changed.

        Raises:
            DuplicateTrackingIdError if the new tracking ID is taken
            OrderNotFoundError if the order was deleted meanwhile
        """
        doc = {**_without_id(data), "updatedAt": datetime.now(timezone.utc)}
        order_ref = self._order_ref(order_id)

        batch = self._db.batch()
        tracking_id = doc.get("trackingId")
        if previous_tracking_id and tracking_id != previous_tracking_id:
            batch.create(self._tracking_ref(tracking_id), {
                "trackingId": tracking_id,
                "orderId": order_id,
            })
            batch.delete(self._tracking_ref(previous_tracking_id))
        # update() requires the document to exist, so a concurrent delete
        # cannot be undone by this write
        batch.update(order_ref, doc)
        self._commit(batch)

        logger.info(f"Order {order_id} updated")
        return {**doc, "id": order_id}

    def delete(self, order_id: str, tracking_id: Optional[str] = None) -> None:
        """Remove an order and release its tracking ID."""
        batch = self._db.batch()
        batch.delete(self._order_ref(order_id))
        if tracking_id:
            batch.delete(self._tracking_ref(tracking_id))
        batch.commit()
        logger.info(f"Order {order_id} deleted")

    def _commit(self, batch) -> None:
        try:
            batch.commit()
        except AlreadyExists as exc:
            raise DuplicateTrackingIdError() from exc
        except NotFound as exc:
            raise OrderNotFoundError() from exc


def _without_id(data: Dict[str, Any]) -> Dict[str, Any]:
    # The document ID lives on the reference, not in the stored fields
    return {k: v for k, v in data.items() if k != "id"}
