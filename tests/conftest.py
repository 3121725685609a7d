"""Pytest configuration and shared fixtures.

Provides environment setup for the provider clients and an in-memory fake
Firestore client for the monitoring repository and API tests.
"""

import itertools
import sys
from pathlib import Path

import pytest

# Add the project root to path for imports
root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

GITLAB_URL = "https://gitlab.example.com"
FLOWLU_URL = "https://acme.flowlu.com/api/v1/module"
CLOCKIFY_URL = "https://api.clockify.me/api/v1"

PROVIDER_ENV = {
    "GITLAB_URL": GITLAB_URL,
    "GITLAB_PROJECT_ID": "42",
    "GITLAB_PRIVATE_TOKEN": "gl-token",
    "FLOWLU_API_URL": FLOWLU_URL,
    "FLOWLU_API_KEY": "flowlu-key",
    "FLOWLU_MIN_REQUEST_INTERVAL": "0",
    "FLOWLU_RETRY_DELAY": "0",
    "CLOCKIFY_API_URL": CLOCKIFY_URL,
    "CLOCKIFY_API_KEY": "clockify-key",
    "CLOCKIFY_WORKSPACE_ID": "ws-1",
}


@pytest.fixture
def provider_env(monkeypatch):
    """Set provider credentials with rate limiting and backoff disabled."""
    for key, value in PROVIDER_ENV.items():
        monkeypatch.setenv(key, value)
    return PROVIDER_ENV


# =============================================================================
# Fake Firestore
# =============================================================================


class FakeFirestoreDocument:
    """Fake Firestore document snapshot."""

    def __init__(self, doc_id: str, data: dict, exists: bool = True):
        self.id = doc_id
        self._data = data
        self.exists = exists

    def to_dict(self):
        return dict(self._data) if self.exists else None


class FakeFirestoreDocRef:
    """Fake Firestore document reference."""

    def __init__(self, collection, doc_id: str):
        self._collection = collection
        self.id = doc_id

    def get(self):
        data = self._collection.docs.get(self.id)
        return FakeFirestoreDocument(self.id, data or {}, exists=data is not None)

    def set(self, data: dict):
        self._collection.docs[self.id] = dict(data)

    def update(self, data: dict):
        self._collection.docs.setdefault(self.id, {}).update(data)


class FakeFirestoreQuery:
    """Immutable query over a fake collection supporting ==, order_by, offset, limit."""

    def __init__(self, collection, filters=(), order=None, skip=0, take=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._skip = skip
        self._take = take

    def _copy(self, **changes):
        state = {
            "filters": self._filters,
            "order": self._order,
            "skip": self._skip,
            "take": self._take,
        }
        state.update(changes)
        return FakeFirestoreQuery(self._collection, **state)

    def where(self, field=None, op=None, value=None, *, filter=None):
        if filter is not None:
            field, op, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field, op, value),))

    def order_by(self, field: str, direction: str = "ASCENDING"):
        return self._copy(order=(field, direction))

    def offset(self, n: int):
        return self._copy(skip=n)

    def limit(self, n: int):
        return self._copy(take=n)

    def stream(self):
        items = [
            (doc_id, data)
            for doc_id, data in self._collection.docs.items()
            if all(op == "==" and data.get(field) == value for field, op, value in self._filters)
        ]
        if self._order is not None:
            field, direction = self._order
            items.sort(key=lambda item: item[1].get(field) or "", reverse=direction == "DESCENDING")
        items = items[self._skip:]
        if self._take is not None:
            items = items[: self._take]
        for doc_id, data in items:
            yield FakeFirestoreDocument(doc_id, data)


class FakeFirestoreCollection(FakeFirestoreQuery):
    """Fake Firestore collection with auto-generated document ids."""

    _ids = itertools.count(1)

    def __init__(self, name: str):
        self.name = name
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id: str = None):
        return FakeFirestoreDocRef(self, doc_id or f"doc-{next(self._ids)}")


class FakeFirestoreClient:
    """Fake Firestore client keeping collections in memory."""

    def __init__(self, project: str = "test-project"):
        self.project = project
        self._collections = {}

    def collection(self, name: str):
        if name not in self._collections:
            self._collections[name] = FakeFirestoreCollection(name)
        return self._collections[name]

    def collections(self):
        return iter(self._collections.values())

    def close(self):
        pass


@pytest.fixture
def fake_firestore(monkeypatch):
    monkeypatch.setenv("FIRESTORE_COLLECTION_PREFIX", "test_")
    return FakeFirestoreClient()
