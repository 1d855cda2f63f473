# app/schemas/table_schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.core.config import MIN_TABLE_NUMBER, MAX_TABLE_NUMBER


class TableCreate(BaseModel):
    table_number: int = Field(..., ge=MIN_TABLE_NUMBER, le=MAX_TABLE_NUMBER)
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    location: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, ge=1, le=20)


class TableUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    location: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, ge=1, le=20)
    is_active: Optional[bool] = None


class TableRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be blank")
        return v


class TableOut(BaseModel):
    id: int
    table_number: int
    name: str
    qr_code: str
    points: int
    is_active: bool
    last_points_update: datetime
    location: Optional[str] = None
    capacity: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TableDetailOut(TableOut):
    qr_code_image: Optional[str] = None


class RankedTableOut(BaseModel):
    id: int
    table_number: int
    name: str
    qr_code: str
    points: int
    last_points_update: datetime
    location: Optional[str] = None
    capacity: Optional[int] = None
    position: int
    medal: Optional[str] = None


class TableResponse(BaseModel):
    message: str
    data: Optional[TableDetailOut] = None


class TableListResponse(BaseModel):
    message: str
    count: int
    total: int
    page: int
    pages: int
    data: List[RankedTableOut]


class LeaderboardResponse(BaseModel):
    message: str
    count: int
    data: List[RankedTableOut]
    last_update: datetime


class TableStatsOut(BaseModel):
    total_tables: int = 0
    total_points: int = 0
    average_points: float = 0
    max_points: int = 0
    min_points: int = 0


class TableStatsResponse(BaseModel):
    message: str
    data: TableStatsOut


class ResetPointsResponse(BaseModel):
    message: str
    reset_count: int
