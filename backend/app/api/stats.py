from fastapi import APIRouter, Depends
from app.auth import get_current_user
from app.schemas import CurrentUser, DashboardStats
from app.services.snapshots import LiveCollections, get_live_collections

router = APIRouter()


@router.get("", response_model=DashboardStats)
async def get_stats(
    live: LiveCollections = Depends(get_live_collections),
    _: CurrentUser = Depends(get_current_user),
):
    return live.stats()
