# app/schemas/transaction_schemas.py
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime

from app.models.transaction_models import TransactionType
from app.schemas.table_schemas import TableOut, RankedTableOut


class PointsRequest(BaseModel):
    qr_code: str = Field(..., min_length=1)
    # product-level range is enforced by the points service
    points: int
    description: Optional[str] = Field(None, max_length=200)


class AwardRequest(PointsRequest):
    type: TransactionType = TransactionType.EARNED


class TableRef(BaseModel):
    id: int
    table_number: int
    name: str
    qr_code: str

    class Config:
        from_attributes = True


class UserRef(BaseModel):
    id: int
    username: str
    role: str

    class Config:
        from_attributes = True


class TransactionOut(BaseModel):
    id: int
    table_id: int
    assigned_by: int
    points: int
    type: TransactionType
    description: Optional[str] = None
    previous_points: int
    new_points: int
    points_difference: int
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionDetailOut(TransactionOut):
    table: Optional[TableRef] = None
    assigned_by_user: Optional[UserRef] = None


class PointsResult(BaseModel):
    table: TableOut
    previous_points: int
    transaction: TransactionOut


class PointsResponse(BaseModel):
    message: str
    data: PointsResult


class TransactionListResponse(BaseModel):
    message: str
    count: int
    total: int
    page: int
    pages: int
    data: List[TransactionDetailOut]


class TableHistoryOut(BaseModel):
    table: TableRef
    current_points: int
    transactions: List[TransactionDetailOut]


class TableHistoryResponse(BaseModel):
    message: str
    count: int
    data: TableHistoryOut


class TableWithHistoryOut(RankedTableOut):
    position: Optional[int] = None
    is_active: bool
    recent_transactions: List[TransactionDetailOut] = []


class TableWithHistoryResponse(BaseModel):
    message: str
    data: TableWithHistoryOut


class UserActivityTransactionsResponse(BaseModel):
    message: str
    count: int
    data: List[TransactionDetailOut]


class TypeAggregate(BaseModel):
    count: int
    total_points: int
    avg_points: float


class DailySummary(BaseModel):
    date: date
    total_points: int
    total_transactions: int
    average_points: float


class DailyAggregateOut(BaseModel):
    summary: DailySummary
    by_type: Dict[TransactionType, TypeAggregate]


class DailyAggregateResponse(BaseModel):
    message: str
    data: DailyAggregateOut


class ReconciliationEntry(BaseModel):
    table_id: int
    table_number: int
    qr_code: str
    points: int
    ledger_points: int
    drift: int
    in_sync: bool


class ReconciliationResponse(BaseModel):
    message: str
    out_of_sync: int
    data: List[ReconciliationEntry]


class MessageResponse(BaseModel):
    message: str
