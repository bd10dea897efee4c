"""Shared fixtures: an in-memory Firestore stand-in and an API client.

FakeFirestore covers the client surface OrderRepository uses: collections,
document references, equality where(), order_by(), offset(), limit(),
select() projections, stream(), get_all(), count() aggregations and
write batches with create and update preconditions.
"""

import copy
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud import firestore

from order_api.dependencies import get_firestore
from order_api.main import app
from order_api.middleware.rate_limit import limiter
from order_api.repository import OrderRepository
from order_api.service import OrderService


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    def get(self):
        self._db.maybe_fail()
        return FakeSnapshot(self.id, self._db.docs(self._collection).get(self.id))

    def set(self, data, merge=False):
        self._db.maybe_fail()
        self._db.docs(self._collection)[self.id] = copy.deepcopy(data)

    def delete(self):
        self._db.maybe_fail()
        self._db.docs(self._collection).pop(self.id, None)


class FakeAggregationResult:
    def __init__(self, alias, value):
        self.alias = alias
        self.value = value


class FakeAggregationQuery:
    def __init__(self, query, alias):
        self._query = query
        self._alias = alias

    def get(self):
        return [[FakeAggregationResult(self._alias, len(self._query.get()))]]


class FakeQuery:
    def __init__(self, db, collection, filters=(), orders=(), skip=0, take=None, fields=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._skip = skip
        self._take = take
        self._fields = fields

    def _copy(self, **changes):
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "skip": self._skip,
            "take": self._take,
            "fields": self._fields,
        }
        state.update(changes)
        return FakeQuery(self._db, self._collection, **state)

    def where(self, field, op, value):
        assert op == "==", f"unsupported operator {op}"
        self._db.where_calls.append((field, value))
        return self._copy(filters=self._filters + ((field, value),))

    def order_by(self, field, direction=firestore.Query.ASCENDING):
        return self._copy(orders=self._orders + ((field, direction),))

    def select(self, field_paths):
        self._db.select_calls.append(tuple(field_paths))
        return self._copy(fields=tuple(field_paths))

    def offset(self, n):
        return self._copy(skip=n)

    def limit(self, n):
        return self._copy(take=n)

    def count(self, alias=None):
        return FakeAggregationQuery(self, alias)

    def stream(self):
        self._db.maybe_fail()
        rows = [
            (doc_id, data) for doc_id, data in self._db.docs(self._collection).items()
            if all(data.get(f) == v for f, v in self._filters)
        ]
        for field, direction in reversed(self._orders):
            # Firestore leaves out documents that lack the ordering field;
            # explicit nulls are kept and sort before every other value
            rows = [r for r in rows if field in r[1]]
            rows.sort(
                key=lambda r, f=field: (r[1][f] is not None, r[1][f]),
                reverse=direction == firestore.Query.DESCENDING,
            )
        rows = rows[self._skip:]
        if self._take is not None:
            rows = rows[:self._take]
        if self._fields is not None:
            rows = [(doc_id, {f: data[f] for f in self._fields if f in data}) for doc_id, data in rows]
        return iter([FakeSnapshot(doc_id, copy.deepcopy(data)) for doc_id, data in rows])

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, self._collection, doc_id or uuid.uuid4().hex[:20])


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def create(self, ref, data):
        self._ops.append(("create", ref, data))

    def set(self, ref, data, merge=False):
        self._ops.append(("set", ref, data))

    def update(self, ref, data):
        self._ops.append(("update", ref, data))

    def delete(self, ref):
        self._ops.append(("delete", ref, None))

    def commit(self):
        self._db.maybe_fail()
        # All-or-nothing: check preconditions before applying anything
        for kind, ref, _ in self._ops:
            if kind == "create" and ref.get().exists:
                raise AlreadyExists(f"Document already exists: {ref.id}")
            if kind == "update" and not ref.get().exists:
                raise NotFound(f"No document to update: {ref.id}")
        for kind, ref, data in self._ops:
            if kind == "delete":
                ref.delete()
            elif kind == "update":
                ref.set({**ref.get().to_dict(), **data})
            else:
                ref.set(data)


class FakeFirestore:
    def __init__(self):
        self._collections = {}
        self.fail_with = None
        self.where_calls = []
        self.select_calls = []

    def docs(self, name):
        return self._collections.setdefault(name, {})

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def get_all(self, references):
        # Firestore does not promise result order
        for ref in reversed(list(references)):
            yield ref.get()

    def maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with


# =============================================================================
# FIXTURES
# =============================================================================

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_order_doc(n, **overrides):
    """Stored order document number n; createdAt increases with n."""
    doc = {
        "customerName": f"Customer {n}",
        "orderDate": BASE_TIME + timedelta(days=n),
        "orderType": "online",
        "trackingId": f"ORD-TEST-{n:04d}",
        "orderTotal": float(n * 10),
        "action": "pending",
        "status": "active",
        "createdAt": BASE_TIME + timedelta(minutes=n),
        "updatedAt": BASE_TIME + timedelta(minutes=n),
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def repository(fake_db):
    return OrderRepository(fake_db)


@pytest.fixture
def service(repository):
    return OrderService(repository)


@pytest.fixture
def seed(fake_db):
    """Insert stored orders directly, bypassing the service."""
    def _seed(*docs):
        ids = []
        for doc in docs:
            doc_id = f"order{len(fake_db.docs('orders')) + 1:03d}"
            fake_db.docs("orders")[doc_id] = copy.deepcopy(doc)
            ids.append(doc_id)
        return ids
    return _seed


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_firestore] = lambda: fake_db
    limiter.enabled = False
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True
