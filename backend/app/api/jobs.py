import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import require_confirmation
from app.auth import get_current_user
from app.config import get_settings
from app.middleware.metrics import record_listing_latency
from app.schemas import (
    CurrentUser,
    DeleteOldJobsResponse,
    JobCreate,
    JobListResponse,
    JobRecord,
    JobResponse,
    JobUpdate,
    SharedUpdate,
    ShareMessageResponse,
)
from app.services.document_store import DocumentNotFound, DocumentStore, get_document_store
from app.services.listing import (
    ListingView,
    as_reference,
    build_listing,
    index_by_id,
    resolve_name,
)
from app.services.share import build_share_message
from app.services.snapshots import JOBS, LiveCollections, get_live_collections

logger = logging.getLogger(__name__)

router = APIRouter()


def to_response(job: JobRecord, live: LiveCollections) -> JobResponse:
    return JobResponse(
        **job.model_dump(),
        company_name=resolve_name(as_reference(job.company), index_by_id(live.companies)),
        category_name=resolve_name(as_reference(job.category), index_by_id(live.categories)),
    )


def resolve_links(data: Dict[str, Any], live: LiveCollections) -> Dict[str, Any]:
    """Replace company/category ids with embedded copies of the records."""
    if "company" in data:
        company = live.company(data["company"])
        if company is None:
            raise HTTPException(status_code=422, detail=f"Unknown company: {data['company']}")
        data["company"] = company.model_dump()
    if "category" in data:
        category = live.category(data["category"])
        if category is None:
            raise HTTPException(status_code=422, detail=f"Unknown category: {data['category']}")
        data["category"] = category.model_dump()
    return data


async def load_job(store: DocumentStore, job_id: str) -> JobRecord:
    document = await store.get(JOBS, job_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobRecord.model_validate(document)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    search: str = Query(""),
    status_filter: str = Query("all", alias="status"),
    category: str = Query("all"),
    page: int = Query(1),
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    settings = get_settings()
    view = ListingView(search=search, status=status_filter, category=category, page=page)

    start = time.perf_counter()
    result = build_listing(live.jobs, live.companies, live.categories, view, page_size=settings.page_size)
    record_listing_latency(time.perf_counter() - start)

    return JobListResponse(
        jobs=[
            JobResponse(**row.job.model_dump(), company_name=row.company_name, category_name=row.category_name)
            for row in result.rows
        ],
        total=result.total,
        page=result.page,
        per_page=result.page_size,
        total_pages=result.total_pages,
    )


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    store: DocumentStore = Depends(get_document_store),
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    data = resolve_links(payload.model_dump(mode="json"), live)
    data["posted_date"] = datetime.now(timezone.utc).isoformat()
    data["applied_count"] = 0

    job_id = await store.add(JOBS, data)
    logger.info(f"Created job {job_id}: {payload.title!r}")
    return to_response(await load_job(store, job_id), live)


@router.delete("/old", response_model=DeleteOldJobsResponse)
async def delete_old_jobs(
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
    __: bool = Depends(require_confirmation),
):
    settings = get_settings()
    cutoff = datetime.now(timezone.utc) - timedelta(days=settings.old_job_days)
    deleted = await store.delete_where(JOBS, "posted_date", "<", cutoff.isoformat())
    logger.info(f"Deleted {deleted} jobs older than {settings.old_job_days} days")
    return DeleteOldJobsResponse(deleted=deleted, cutoff=cutoff)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    job = live.job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return to_response(job, live)


@router.get("/{job_id}/share-message", response_model=ShareMessageResponse)
async def get_share_message(
    job_id: str,
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    job = live.job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    company_name = resolve_name(as_reference(job.company), index_by_id(live.companies))
    return ShareMessageResponse(job_id=job.id, message=build_share_message(job, company_name))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str,
    update: JobUpdate,
    store: DocumentStore = Depends(get_document_store),
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    # Explicit nulls mean "leave as is"; no field here is clearable
    changes = {k: v for k, v in update.model_dump(mode="json", exclude_unset=True).items() if v is not None}
    changes = resolve_links(changes, live)

    try:
        await store.update(JOBS, job_id, changes)
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Job not found")

    return to_response(await load_job(store, job_id), live)


@router.put("/{job_id}/shared", response_model=JobResponse)
async def set_shared(
    job_id: str,
    payload: SharedUpdate,
    store: DocumentStore = Depends(get_document_store),
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
    __: bool = Depends(require_confirmation),
):
    try:
        await store.update(JOBS, job_id, {"is_shared": payload.is_shared})
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Job not found")

    logger.info(f"Job {job_id} is_shared={payload.is_shared}")
    return to_response(await load_job(store, job_id), live)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: str,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
    __: bool = Depends(require_confirmation),
):
    try:
        await store.delete(JOBS, job_id)
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Job not found")
