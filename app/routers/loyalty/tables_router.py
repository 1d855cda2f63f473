# app/routers/loyalty/tables_router.py
import math

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.db import get_db
from app.schemas.table_schemas import (
    TableCreate, TableUpdate, TableRename, TableOut, TableDetailOut,
    TableResponse, TableListResponse, LeaderboardResponse,
    TableStatsOut, TableStatsResponse, ResetPointsResponse,
)
from app.schemas.transaction_schemas import (
    TableWithHistoryOut, TableWithHistoryResponse, TransactionDetailOut, MessageResponse,
)
from app.services import ledger_service, ranking_service, table_service
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.time_utils import local_now

router = APIRouter(prefix="/tables", tags=["Tables"])


async def _with_position(db: AsyncSession, table, recent: int = 0) -> TableWithHistoryOut:
    # inactive tables are not ranked
    position = await ranking_service.position_of(db, table) if table.is_active else None
    entry = ranking_service.ranked_entry(table, position)
    transactions = []
    if recent:
        history = await ledger_service.history_for_table(db, table.id, recent)
        transactions = [TransactionDetailOut.model_validate(t) for t in history]
    return TableWithHistoryOut(**entry, is_active=table.is_active, recent_transactions=transactions)


# ---------------------------
# PUBLIC
# ---------------------------
@router.get("/", response_model=TableListResponse)
async def list_tables_route(
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    total, tables = await ranking_service.leaderboard_page(db, page, limit)
    return TableListResponse(
        message="Tables retrieved successfully",
        count=len(tables),
        total=total,
        page=page,
        pages=math.ceil(total / limit) if total else 0,
        data=tables,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard_route(db: AsyncSession = Depends(get_db)):
    board = await ranking_service.leaderboard(db)
    return LeaderboardResponse(
        message="Leaderboard retrieved successfully",
        count=len(board),
        data=board,
        last_update=local_now(),
    )


@router.get("/stats/summary", response_model=TableStatsResponse)
@require_role(["admin", "cashier"])
async def table_stats_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    stats = await table_service.table_stats(db)
    return TableStatsResponse(message="Table stats retrieved successfully", data=TableStatsOut(**stats))


@router.get("/qr/{qr_code}", response_model=TableWithHistoryResponse)
async def get_table_by_qr_route(qr_code: str, db: AsyncSession = Depends(get_db)):
    table = await table_service.get_table_by_qr_code(db, qr_code)
    return TableWithHistoryResponse(message="Table retrieved successfully", data=await _with_position(db, table))


@router.get("/qr/{qr_code}/position")
async def get_position_route(qr_code: str, db: AsyncSession = Depends(get_db)):
    position = await ranking_service.position_of_qr_code(db, qr_code)
    return {"qr_code": qr_code.upper(), "position": position, "medal": ranking_service.medal_for(position)}


@router.get("/{table_id}", response_model=TableWithHistoryResponse)
async def get_table_route(table_id: int, db: AsyncSession = Depends(get_db)):
    table = await table_service.get_table(db, table_id)
    return TableWithHistoryResponse(
        message="Table retrieved successfully",
        data=await _with_position(db, table, recent=5),
    )


# customers may rename their own table
@router.put("/{table_id}/name", response_model=TableResponse)
async def rename_table_route(table_id: int, body: TableRename, db: AsyncSession = Depends(get_db)):
    table = await table_service.rename_table(db, table_id, body.name)
    return TableResponse(message="Table name updated successfully", data=TableDetailOut.model_validate(table))


# ---------------------------
# CASHIER / ADMIN
# ---------------------------
@router.post("/", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
@require_role(["admin", "cashier"])
async def create_table_route(
    body: TableCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    table = await table_service.create_table(
        db,
        table_number=body.table_number,
        name=body.name,
        location=body.location,
        capacity=body.capacity,
        created_by=_user.id,
    )
    return TableResponse(message="Table created successfully", data=TableDetailOut.model_validate(table))


@router.put("/{table_id}", response_model=TableResponse)
@require_role(["admin", "cashier"])
async def update_table_route(
    table_id: int,
    body: TableUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    table = await table_service.update_table(db, table_id, body.model_dump(exclude_unset=True))
    return TableResponse(message="Table updated successfully", data=TableDetailOut.model_validate(table))


# ---------------------------
# ADMIN
# ---------------------------
@router.delete("/{table_id}", response_model=MessageResponse)
@require_role(["admin"])
async def deactivate_table_route(
    table_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    table = await table_service.deactivate_table(db, table_id)
    return MessageResponse(message=f"Table {table.table_number} deactivated successfully")


@router.post("/reset-points", response_model=ResetPointsResponse)
@require_role(["admin"])
async def reset_points_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    count = await table_service.reset_all_points(db)
    return ResetPointsResponse(message=f"Points reset for {count} tables", reset_count=count)
