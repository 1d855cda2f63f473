# app/utils/activity_helpers.py
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_models import UserActivity


async def log_user_activity(
    db: AsyncSession,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    message: str = "",
    method: Optional[str] = None,
    path: Optional[str] = None,
    commit: bool = False,
):
    """
    Adds a user activity row to the session. The caller is responsible for the commit.
    """
    activity = UserActivity(
        user_id=user_id,
        username=username or "anonymous",
        method=method,
        path=path,
        message=message,
    )
    db.add(activity)
    if commit:
        await db.commit()
    return activity
