# app/services/activity_service.py
from sqlalchemy import select, desc, asc, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
from app.models.activity_models import UserActivity

ALLOWED_SORT_FIELDS = {"id", "created_at"}

async def get_activities(
    db: AsyncSession,
    account_id: str,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    order: str = "desc"
) -> Tuple[int, List[UserActivity]]:
    # Validate sort field
    if sort_by not in ALLOWED_SORT_FIELDS:
        sort_by = "created_at"

    sort_column = getattr(UserActivity, sort_by)
    sort_order = desc(sort_column) if order.lower() == "desc" else asc(sort_column)

    # Build filters
    filters = [UserActivity.account_id == account_id]
    if search:
        filters.append(UserActivity.message.ilike(f"%{search}%"))

    # Count total
    count_stmt = select(func.count(UserActivity.id)).where(*filters)
    total_result = await db.execute(count_stmt)
    total = total_result.scalar() or 0

    # Pagination + sorting, id breaks ties between rows written in one batch
    stmt = (
        select(UserActivity)
        .where(*filters)
        .order_by(sort_order, sort_order_for_id(order))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(stmt)
    activities = result.scalars().all()

    return total, activities


def sort_order_for_id(order: str):
    return desc(UserActivity.id) if order.lower() == "desc" else asc(UserActivity.id)
