"""
Document Store - collection-scoped reads, writes and snapshot listeners

The dashboard never keeps authoritative state itself. Every record lives in
a document store that exposes:

    - add / get / update / delete of single documents
    - delete_where: batch delete by a single-field query
    - list: one ordered read of a whole collection
    - on_snapshot: listener receiving the whole ordered collection once on
      registration and again after every committed change

Snapshots are lists of plain dicts with the document id merged in under
"id". SqlDocumentStore is the SQLAlchemy-backed implementation; any managed
document database can be plugged in behind the same interface.

Usage:
    store = SqlDocumentStore(async_session)
    job_id = await store.add("jobs", {"title": "Backend Engineer"})

    def on_jobs(snapshot):
        print(len(snapshot))

    unsubscribe = await store.on_snapshot("jobs", on_jobs, order_by="posted_date", descending=True)
    ...
    unsubscribe()
"""

import logging
import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.middleware.metrics import record_document_write
from app.models import Document, new_document_id

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]

QUERY_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
    ">=": operator.ge,
    ">": operator.gt,
}


class DocumentNotFound(Exception):
    """Raised when a document id does not exist in its collection."""

    def __init__(self, collection: str, document_id: str):
        super().__init__(f"{collection}/{document_id} not found")
        self.collection = collection
        self.document_id = document_id


def sort_snapshot(snapshot: Snapshot, order_by: Optional[str], descending: bool = False) -> Snapshot:
    """
    Order documents by a field.

    Documents missing the field (or holding null) go after all others in
    either direction, keeping their relative order.
    """
    if not order_by:
        return list(snapshot)
    present = [doc for doc in snapshot if doc.get(order_by) is not None]
    missing = [doc for doc in snapshot if doc.get(order_by) is None]
    present.sort(key=lambda doc: field_sort_key(doc[order_by]), reverse=descending)
    return present + missing


def field_sort_key(value: Any) -> Tuple[int, str, Any]:
    """
    Total order over mixed field types.

    Values group by kind (numbers, then strings, then anything else) and
    are compared only within their group.
    """
    if isinstance(value, (int, float)):
        return (0, "", value)
    if isinstance(value, str):
        return (1, "", value)
    return (2, type(value).__name__, repr(value))


def matches_query(document: Dict[str, Any], field: str, op: str, value: Any) -> bool:
    compare = QUERY_OPERATORS[op]
    current = document.get(field)
    if current is None:
        return False
    try:
        return compare(current, value)
    except TypeError:
        return False


class DocumentStore(ABC):
    """Abstract interface of the external document database."""

    @abstractmethod
    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a document and return its generated id."""
        pass

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single document (with "id") or None."""
        pass

    @abstractmethod
    async def update(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        """Merge fields into an existing document."""
        pass

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> None:
        """Delete a single document."""
        pass

    @abstractmethod
    async def delete_where(self, collection: str, field: str, op: str, value: Any) -> int:
        """Delete every document matching the query in one batch; return the count."""
        pass

    @abstractmethod
    async def list(
        self, collection: str, order_by: Optional[str] = None, descending: bool = False
    ) -> Snapshot:
        """Read the whole collection once."""
        pass

    @abstractmethod
    async def on_snapshot(
        self,
        collection: str,
        callback: SnapshotCallback,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        """Register a whole-collection snapshot listener."""
        pass


@dataclass(eq=False)
class _Listener:
    collection: str
    callback: SnapshotCallback
    order_by: Optional[str]
    descending: bool


class SqlDocumentStore(DocumentStore):
    """
    Document store over a single SQLAlchemy "documents" table.

    Listeners are notified synchronously after each commit, so a listener
    has seen a write by the time the writing coroutine resumes.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._listeners: List[_Listener] = []

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        document_id = new_document_id()
        body = {k: v for k, v in data.items() if k != "id"}
        async with self.session_factory() as session:
            session.add(Document(collection=collection, id=document_id, data=body))
            await session.commit()
        logger.info(f"Added {collection}/{document_id}")
        record_document_write(collection, "add")
        await self._notify(collection)
        return document_id

    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        async with self.session_factory() as session:
            row = await self._fetch(session, collection, document_id)
            if row is None:
                return None
            return {**row.data, "id": row.id}

    async def update(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            row = await self._fetch(session, collection, document_id)
            if row is None:
                raise DocumentNotFound(collection, document_id)
            # Reassign so the JSON column is flagged dirty
            row.data = {**row.data, **{k: v for k, v in data.items() if k != "id"}}
            await session.commit()
        logger.info(f"Updated {collection}/{document_id}: {sorted(data)}")
        record_document_write(collection, "update")
        await self._notify(collection)

    async def delete(self, collection: str, document_id: str) -> None:
        async with self.session_factory() as session:
            row = await self._fetch(session, collection, document_id)
            if row is None:
                raise DocumentNotFound(collection, document_id)
            await session.delete(row)
            await session.commit()
        logger.info(f"Deleted {collection}/{document_id}")
        record_document_write(collection, "delete")
        await self._notify(collection)

    async def delete_where(self, collection: str, field: str, op: str, value: Any) -> int:
        if op not in QUERY_OPERATORS:
            raise ValueError(f"Unsupported query operator: {op}")

        async with self.session_factory() as session:
            result = await session.execute(
                select(Document).where(Document.collection == collection)
            )
            doomed = [row for row in result.scalars().all() if matches_query(row.data, field, op, value)]
            for row in doomed:
                await session.delete(row)
            await session.commit()

        logger.info(f"Batch deleted {len(doomed)} documents from {collection} where {field} {op} {value!r}")
        if doomed:
            record_document_write(collection, "delete_where")
            await self._notify(collection)
        return len(doomed)

    async def list(
        self, collection: str, order_by: Optional[str] = None, descending: bool = False
    ) -> Snapshot:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Document)
                .where(Document.collection == collection)
                .order_by(Document.pk)
            )
            snapshot = [{**row.data, "id": row.id} for row in result.scalars().all()]
        return sort_snapshot(snapshot, order_by, descending)

    async def on_snapshot(
        self,
        collection: str,
        callback: SnapshotCallback,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        listener = _Listener(collection, callback, order_by, descending)
        self._listeners.append(listener)
        callback(await self.list(collection, order_by, descending))

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _fetch(self, session: AsyncSession, collection: str, document_id: str) -> Optional[Document]:
        result = await session.execute(
            select(Document).where(Document.collection == collection, Document.id == document_id)
        )
        return result.scalar_one_or_none()

    async def _notify(self, collection: str) -> None:
        listeners = [l for l in self._listeners if l.collection == collection]
        if not listeners:
            return

        snapshot = await self.list(collection)
        for listener in listeners:
            try:
                listener.callback(sort_snapshot(snapshot, listener.order_by, listener.descending))
            except Exception:
                logger.exception(f"Snapshot listener for {collection} failed")


_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """Get or create the process-wide document store."""
    global _store
    if _store is None:
        from app.database import async_session

        _store = SqlDocumentStore(async_session)
    return _store
