"""
Shared fixtures for API tests.

The HTTP tests run against an in-memory document store that follows the
same contract as SqlDocumentStore (ordered snapshots, listeners notified
after every write), so no database file or event-loop-bound connection is
involved.
"""
import asyncio
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models import new_document_id
from app.services.blob_store import LocalBlobStore, get_blob_store
from app.services.document_store import (
    DocumentNotFound,
    DocumentStore,
    QUERY_OPERATORS,
    get_document_store,
    matches_query,
    sort_snapshot,
)
from app.services.logo_form import LogoFormSessions, get_logo_form_sessions
from app.services.previews import PreviewRegistry, get_preview_registry
from app.services.snapshots import LiveCollections, get_live_collections

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "changeme"


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store for tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.listeners: List[tuple] = []

    def _docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        document_id = new_document_id()
        self._docs(collection)[document_id] = {k: v for k, v in data.items() if k != "id"}
        self._notify(collection)
        return document_id

    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        data = self._docs(collection).get(document_id)
        return None if data is None else {**data, "id": document_id}

    async def update(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        docs = self._docs(collection)
        if document_id not in docs:
            raise DocumentNotFound(collection, document_id)
        docs[document_id] = {**docs[document_id], **{k: v for k, v in data.items() if k != "id"}}
        self._notify(collection)

    async def delete(self, collection: str, document_id: str) -> None:
        if self._docs(collection).pop(document_id, None) is None:
            raise DocumentNotFound(collection, document_id)
        self._notify(collection)

    async def delete_where(self, collection: str, field: str, op: str, value: Any) -> int:
        if op not in QUERY_OPERATORS:
            raise ValueError(f"Unsupported query operator: {op}")
        docs = self._docs(collection)
        doomed = [doc_id for doc_id, data in docs.items() if matches_query(data, field, op, value)]
        for doc_id in doomed:
            del docs[doc_id]
        if doomed:
            self._notify(collection)
        return len(doomed)

    def _snapshot(self, collection: str, order_by=None, descending=False):
        snapshot = [{**data, "id": doc_id} for doc_id, data in self._docs(collection).items()]
        return sort_snapshot(snapshot, order_by, descending)

    async def list(self, collection: str, order_by=None, descending=False):
        return self._snapshot(collection, order_by, descending)

    async def on_snapshot(self, collection, callback, order_by=None, descending=False):
        entry = (collection, callback, order_by, descending)
        self.listeners.append(entry)
        callback(self._snapshot(collection, order_by, descending))

        def unsubscribe():
            if entry in self.listeners:
                self.listeners.remove(entry)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        for name, callback, order_by, descending in list(self.listeners):
            if name == collection:
                callback(self._snapshot(collection, order_by, descending))


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def live(store):
    collections = LiveCollections()
    asyncio.run(collections.start(store))
    yield collections
    collections.stop()


@pytest.fixture
def previews():
    return PreviewRegistry()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path), "company-logos", "http://cdn.test/static")


@pytest.fixture
def client(store, live, previews, blob_store):
    """Unauthenticated client with every process-wide service swapped out."""
    sessions = LogoFormSessions(previews)
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_live_collections] = lambda: live
    app.dependency_overrides[get_preview_registry] = lambda: previews
    app.dependency_overrides[get_logo_form_sessions] = lambda: sessions
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    yield TestClient(app)

    sessions.close_all()
    app.dependency_overrides.clear()


@pytest.fixture
def admin(client):
    """Client holding a signed-in admin session cookie."""
    response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client
