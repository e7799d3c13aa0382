import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import require_confirmation
from app.auth import get_current_user
from app.schemas import CompanyCreate, CompanyListResponse, CompanyResponse, CompanyUpdate, CurrentUser
from app.services.document_store import DocumentNotFound, DocumentStore, get_document_store
from app.services.snapshots import COMPANIES, LiveCollections, get_live_collections

logger = logging.getLogger(__name__)

router = APIRouter()


async def load_company(store: DocumentStore, company_id: str) -> CompanyResponse:
    document = await store.get(COMPANIES, company_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return CompanyResponse.model_validate(document)


@router.get("", response_model=CompanyListResponse)
async def list_companies(
    search: str = Query(""),
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    needle = search.strip().lower()
    companies = sorted(live.companies, key=lambda c: c.name.lower())
    if needle:
        companies = [c for c in companies if needle in c.name.lower()]
    return CompanyListResponse(companies=companies, total=len(companies))


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreate,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
):
    company_id = await store.add(COMPANIES, payload.model_dump())
    logger.info(f"Created company {company_id}: {payload.name!r}")
    return await load_company(store, company_id)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: str,
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    company = live.company(company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.patch("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: str,
    update: CompanyUpdate,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
):
    changes = update.model_dump(exclude_unset=True)
    # Name cannot be cleared; optional fields can (blank -> None)
    if changes.get("name", "") is None:
        changes.pop("name")

    try:
        await store.update(COMPANIES, company_id, changes)
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Company not found")
    return await load_company(store, company_id)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: str,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
    __: bool = Depends(require_confirmation),
):
    try:
        await store.delete(COMPANIES, company_id)
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Company not found")
