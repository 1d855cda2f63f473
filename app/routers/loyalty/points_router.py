# app/routers/loyalty/points_router.py
import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.db import get_db
from app.core.exceptions import UnauthorizedError
from app.models.transaction_models import TransactionType
from app.schemas.table_schemas import TableOut
from app.schemas.transaction_schemas import (
    AwardRequest, PointsRequest, PointsResponse, PointsResult,
    TransactionOut, TransactionDetailOut, TransactionListResponse,
    TableRef, TableHistoryOut, TableHistoryResponse,
    UserActivityTransactionsResponse, DailyAggregateResponse,
    ReconciliationResponse, MessageResponse,
)
from app.services import ledger_service, points_service, table_service
from app.services.ledger_service import TransactionFilter
from app.utils.check_roles import require_role, has_role
from app.utils.get_user import get_current_user
from app.utils.request_context import RequestContext, get_request_context

router = APIRouter(prefix="/points", tags=["Points"])


def _points_result(result: dict) -> PointsResult:
    return PointsResult(
        table=TableOut.model_validate(result["table"]),
        previous_points=result["previous_points"],
        transaction=TransactionOut.model_validate(result["transaction"]),
    )


# ---------------------------
# AWARD / REDEEM
# ---------------------------
@router.post("/add", response_model=PointsResponse)
@require_role(["admin", "cashier"])
async def award_points_route(
    body: AwardRequest,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    _user=Depends(get_current_user),
):
    result = await points_service.award(db, body.qr_code, body.points, body.description, ctx, body.type)
    table = result["table"]
    return PointsResponse(message=f"{body.points} points added to {table.name}", data=_points_result(result))


@router.post("/redeem", response_model=PointsResponse)
@require_role(["admin", "cashier"])
async def redeem_points_route(
    body: PointsRequest,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    _user=Depends(get_current_user),
):
    result = await points_service.redeem(db, body.qr_code, body.points, body.description, ctx)
    table = result["table"]
    return PointsResponse(message=f"{body.points} points redeemed from {table.name}", data=_points_result(result))


# ---------------------------
# LEDGER QUERIES
# ---------------------------
@router.get("/transactions", response_model=TransactionListResponse)
@require_role(["admin", "cashier"])
async def list_transactions_route(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    table_id: Optional[int] = Query(None, ge=1),
    assigned_by: Optional[int] = Query(None, ge=1),
    type: Optional[TransactionType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    filters = TransactionFilter(table_id=table_id, assigned_by=assigned_by, type=type)
    total, entries = await ledger_service.list_transactions(db, filters, page, limit)
    return TransactionListResponse(
        message="Transactions retrieved successfully",
        count=len(entries),
        total=total,
        page=page,
        pages=math.ceil(total / limit) if total else 0,
        data=[TransactionDetailOut.model_validate(e) for e in entries],
    )


@router.get("/table/{table_id}/history", response_model=TableHistoryResponse)
async def table_history_route(
    table_id: int,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(10, ge=1, le=50),
):
    table = await table_service.get_table(db, table_id)
    entries = await ledger_service.history_for_table(db, table.id, limit)
    return TableHistoryResponse(
        message="Table history retrieved successfully",
        count=len(entries),
        data=TableHistoryOut(
            table=TableRef.model_validate(table),
            current_points=table.points,
            transactions=[TransactionDetailOut.model_validate(e) for e in entries],
        ),
    )


@router.get("/user/{user_id}/activity", response_model=UserActivityTransactionsResponse)
async def user_activity_route(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
):
    if not has_role(_user, ["admin"]) and _user.id != user_id:
        raise UnauthorizedError("Not allowed to view this activity")
    entries = await ledger_service.activity_for_user(db, user_id, limit)
    return UserActivityTransactionsResponse(
        message="User activity retrieved successfully",
        count=len(entries),
        data=[TransactionDetailOut.model_validate(e) for e in entries],
    )


@router.get("/stats/daily", response_model=DailyAggregateResponse)
@require_role(["admin", "cashier"])
async def daily_stats_route(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    day: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD, defaults to today"),
):
    stats = await ledger_service.daily_aggregate(db, day)
    return DailyAggregateResponse(message="Daily stats retrieved successfully", data=stats)


# ---------------------------
# ADMIN
# ---------------------------
@router.delete("/transactions/{transaction_id}", response_model=MessageResponse)
@require_role(["admin"])
async def delete_transaction_route(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    await ledger_service.soft_delete_transaction(db, transaction_id)
    return MessageResponse(message="Transaction deleted")


@router.get("/audit", response_model=ReconciliationResponse)
@require_role(["admin"])
async def ledger_audit_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    report = await ledger_service.reconcile(db)
    out_of_sync = sum(1 for r in report if not r["in_sync"])
    return ReconciliationResponse(
        message="Ledger reconciliation completed",
        out_of_sync=out_of_sync,
        data=report,
    )
