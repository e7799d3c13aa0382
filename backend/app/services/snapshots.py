"""
Live Collections - latest store snapshots of jobs, companies and categories

Subscribes once at startup and keeps the newest whole-collection snapshot
of each collection, parsed into schema objects. Readers (job listing,
dashboard stats, reference checks) never query the store directly, and
nothing here is mutated locally: a write is visible only after the store
has delivered the next snapshot.
"""

import logging
from typing import Any, Callable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas import CategoryResponse, CompanyResponse, DashboardStats, JobRecord
from app.services.document_store import DocumentStore, Snapshot, Unsubscribe

logger = logging.getLogger(__name__)

JOBS = "jobs"
COMPANIES = "companies"
CATEGORIES = "categories"

M = TypeVar("M", bound=BaseModel)


def parse_snapshot(snapshot: Snapshot, model: Type[M], collection: str) -> List[M]:
    """Parse documents, skipping (and logging) the ones that do not validate."""
    records: List[M] = []
    for document in snapshot:
        try:
            records.append(model.model_validate(document))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {collection}/{document.get('id')}: {e.error_count()} errors")
    return records


class LiveCollections:
    """
    Holder of the latest parsed snapshots.

    Attributes:
        jobs: Jobs ordered by posted_date, newest first
        companies: Companies ordered by name
        categories: Categories ordered by name
        loaded: Collections that delivered at least one snapshot
    """

    def __init__(self):
        self.jobs: List[JobRecord] = []
        self.companies: List[CompanyResponse] = []
        self.categories: List[CategoryResponse] = []
        self.loaded: set = set()
        self._unsubscribers: List[Unsubscribe] = []

    def _listener(self, collection: str, attr: str, model: Type[BaseModel]) -> Callable[[Snapshot], None]:
        def on_snapshot(snapshot: Snapshot) -> None:
            setattr(self, attr, parse_snapshot(snapshot, model, collection))
            self.loaded.add(collection)
            logger.debug(f"Snapshot of {collection}: {len(snapshot)} documents")

        return on_snapshot

    async def start(self, store: DocumentStore) -> None:
        self._unsubscribers.append(
            await store.on_snapshot(JOBS, self._listener(JOBS, "jobs", JobRecord), order_by="posted_date", descending=True)
        )
        self._unsubscribers.append(
            await store.on_snapshot(COMPANIES, self._listener(COMPANIES, "companies", CompanyResponse), order_by="name")
        )
        self._unsubscribers.append(
            await store.on_snapshot(CATEGORIES, self._listener(CATEGORIES, "categories", CategoryResponse), order_by="name")
        )
        logger.info("Live collections subscribed")

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    @property
    def ready(self) -> bool:
        return {JOBS, COMPANIES, CATEGORIES} <= self.loaded

    def find(self, records: List[Any], record_id: str) -> Optional[Any]:
        return next((r for r in records if r.id == record_id), None)

    def company(self, company_id: str) -> Optional[CompanyResponse]:
        return self.find(self.companies, company_id)

    def category(self, category_id: str) -> Optional[CategoryResponse]:
        return self.find(self.categories, category_id)

    def job(self, job_id: str) -> Optional[JobRecord]:
        return self.find(self.jobs, job_id)

    def stats(self) -> DashboardStats:
        return DashboardStats(
            total_jobs=len(self.jobs),
            active_jobs=sum(1 for job in self.jobs if job.status == "Active"),
            companies_count=len(self.companies),
            categories_count=len(self.categories),
            total_applied=sum(job.applied_count or 0 for job in self.jobs),
        )


_live: Optional[LiveCollections] = None


def get_live_collections() -> LiveCollections:
    global _live
    if _live is None:
        _live = LiveCollections()
    return _live

