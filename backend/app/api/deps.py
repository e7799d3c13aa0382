from fastapi import HTTPException, Query, status


async def require_confirmation(confirm: bool = Query(False)) -> bool:
    """Destructive and share-state changes need an explicit confirm=true."""
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Confirmation required",
        )
    return True
