# app/routers/auth/activity_router.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_db
from app.schemas.activity_schemas import UserActivityListResponse, UserActivityOut
from app.services.activity_service import get_user_activities
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user

router = APIRouter(prefix="/activity", tags=["Activity"])

@router.get("/", response_model=UserActivityListResponse)
@require_role(["admin"])
async def list_activity_route(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    user_id: Optional[int] = Query(None),
    username: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    total, activities = await get_user_activities(db, user_id, username, page, page_size, sort_by, order)
    return UserActivityListResponse(
        message="Activity retrieved successfully",
        total=total,
        data=[UserActivityOut.model_validate(a) for a in activities],
    )
