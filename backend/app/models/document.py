"""
Document Model - SQLAlchemy row backing the document store

Every record (job, company, category) is a JSON document inside a named
collection, mirroring the managed document database the dashboard was
built against. Field-level typing lives in the pydantic schemas; this
table only knows collections and ids.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base
import uuid


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class Document(Base):
    """
    Schemaless document row.

    Attributes:
        pk: Insertion sequence; keeps reads in write order
        collection: Collection name ("jobs", "companies", "categories")
        id: Document id, unique within its collection
        data: Document body (JSON object, without the id)
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "id", name="uq_documents_collection_id"),)

    pk = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(100), nullable=False, index=True)
    id = Column(String(64), nullable=False, default=new_document_id)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
