# app/routers/activity_router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.core.db import get_db
from app.services.activity_service import get_activities
from app.schemas.activity_schemas import UserActivityOut, UserActivityListResponse
from app.utils.get_account import get_current_account

router = APIRouter(prefix="/activities", tags=["Activities"])

@router.get("/", response_model=UserActivityListResponse)
async def list_activities(
    db: AsyncSession = Depends(get_db),
    account_id: str = Depends(get_current_account),
    search: Optional[str] = Query(None, description="Filter by message text"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc")
):
    """
    Fetch the ledger audit trail with pagination, filtering, and sorting.
    """
    total, activities = await get_activities(
        db=db,
        account_id=account_id,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order
    )

    return UserActivityListResponse(
        message="Activities fetched successfully",
        total=total,
        data=[UserActivityOut.model_validate(a) for a in activities]
    )
