# app/utils/activity_helpers.py
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.activity_models import UserActivity

async def log_user_activity(db: AsyncSession, account_id: str, message: str = "", commit: bool = False):
    """
    Adds an activity log to the session. The caller is responsible for the commit.
    """
    activity = UserActivity(
        account_id=account_id,
        message=message
    )
    db.add(activity)
    if commit:
        await db.commit()
