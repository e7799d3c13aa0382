import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import require_confirmation
from app.auth import get_current_user
from app.schemas import CategoryListResponse, CategoryResponse, CategoryWrite, CurrentUser
from app.services.document_store import DocumentNotFound, DocumentStore, get_document_store
from app.services.snapshots import CATEGORIES, LiveCollections, get_live_collections

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    search: str = Query(""),
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    needle = search.lower()
    categories = [c for c in live.categories if needle in c.name.lower()]
    return CategoryListResponse(categories=categories, total=len(categories))


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryWrite,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
):
    category_id = await store.add(CATEGORIES, {"name": payload.name})
    logger.info(f"Created category {category_id}: {payload.name!r}")
    return CategoryResponse(id=category_id, name=payload.name)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryWrite,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
):
    try:
        await store.update(CATEGORIES, category_id, {"name": payload.name})
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Category not found")
    return CategoryResponse(id=category_id, name=payload.name)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    store: DocumentStore = Depends(get_document_store),
    _: CurrentUser = Depends(get_current_user),
    __: bool = Depends(require_confirmation),
):
    try:
        await store.delete(CATEGORIES, category_id)
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Category not found")
