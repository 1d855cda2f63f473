# app/services/table_service.py
"""
Table registry: storage and direct mutation of loyalty tables.

Only field constraints are enforced here. Product rules (per-transaction
caps, inactive tables) belong to the points service.
"""
import logging
import re
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import QR_CODE_PREFIX, MIN_TABLE_NUMBER, MAX_TABLE_NUMBER
from app.core.exceptions import (
    DuplicateKeyError,
    InsufficientPointsError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.table_models import LoyaltyTable
from app.utils.qr_image import render_table_qr
from app.utils.time_utils import local_now

logger = logging.getLogger(__name__)

QR_CODE_RE = re.compile(rf"^{QR_CODE_PREFIX}0*([1-9][0-9]{{0,2}})$")


def qr_code_for(table_number: int) -> str:
    return f"{QR_CODE_PREFIX}{table_number}"


def normalize_qr_code(code: str) -> str:
    """Uppercase and validate `TABLE_<1..999>`; leading zeros are dropped."""
    match = QR_CODE_RE.match((code or "").strip().upper())
    if not match:
        raise ValidationFailedError(f"Invalid QR code '{code}', expected {QR_CODE_PREFIX}<1-{MAX_TABLE_NUMBER}>")
    return qr_code_for(int(match.group(1)))


def default_table_name(table_number: int) -> str:
    return f"Tavolo {table_number}"


# ---------------------------------------------------
# LOOKUPS
# ---------------------------------------------------
async def find_by_qr_code(db: AsyncSession, code: str, include_inactive: bool = False) -> Optional[LoyaltyTable]:
    """
    Return the table whose QR code matches `code` (case-insensitive), or None.
    Inactive tables are skipped unless `include_inactive` is set.
    """
    stmt = select(LoyaltyTable).where(LoyaltyTable.qr_code == normalize_qr_code(code)).execution_options(
        populate_existing=True
    )
    if not include_inactive:
        stmt = stmt.where(LoyaltyTable.is_active == True)
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_table_by_qr_code(db: AsyncSession, code: str) -> LoyaltyTable:
    table = await find_by_qr_code(db, code)
    if not table:
        raise NotFoundError("Table not found")
    return table


async def get_table(db: AsyncSession, table_id: int, active_only: bool = False) -> LoyaltyTable:
    table = await db.get(LoyaltyTable, table_id)
    if not table or (active_only and not table.is_active):
        raise NotFoundError("Table not found")
    return table


# ---------------------------------------------------
# CREATE TABLE
# ---------------------------------------------------
async def create_table(
    db: AsyncSession,
    table_number: int,
    name: Optional[str] = None,
    location: Optional[str] = None,
    capacity: Optional[int] = None,
    created_by: Optional[int] = None,
) -> LoyaltyTable:
    if not MIN_TABLE_NUMBER <= table_number <= MAX_TABLE_NUMBER:
        raise ValidationFailedError(f"Table number must be between {MIN_TABLE_NUMBER} and {MAX_TABLE_NUMBER}")

    qr_code = qr_code_for(table_number)
    existing = await db.execute(
        select(LoyaltyTable.id).where(
            (LoyaltyTable.table_number == table_number) | (LoyaltyTable.qr_code == qr_code)
        )
    )
    if existing.first():
        raise DuplicateKeyError(f"Table number {table_number} already exists")

    table = LoyaltyTable(
        table_number=table_number,
        name=(name or "").strip() or default_table_name(table_number),
        qr_code=qr_code,
        points=0,
        is_active=True,
        last_points_update=local_now(),
        location=location.strip() if location else None,
        capacity=capacity,
        created_by=created_by,
    )
    db.add(table)
    try:
        await db.flush()
    except IntegrityError:
        # lost a race against a concurrent create
        await db.rollback()
        raise DuplicateKeyError(f"Table number {table_number} already exists")

    # A table may exist without a rendered image
    try:
        table.qr_code_image = render_table_qr(table.qr_code)
    except Exception:
        logger.exception(f"QR image generation failed for {table.qr_code}")

    await db.commit()
    await db.refresh(table)
    logger.info(f"Created table {table.table_number} ({table.qr_code})")
    return table


# ---------------------------------------------------
# UPDATE TABLE
# ---------------------------------------------------
def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned or len(cleaned) > 50:
        raise ValidationFailedError("Table name must be 1-50 characters")
    return cleaned


async def rename_table(db: AsyncSession, table_id: int, new_name: str) -> LoyaltyTable:
    table = await get_table(db, table_id, active_only=True)
    table.name = _clean_name(new_name)
    await db.commit()
    await db.refresh(table)
    return table


async def update_table(db: AsyncSession, table_id: int, data: dict) -> LoyaltyTable:
    """Update descriptive fields. `points` and `qr_code` are never touched here."""
    table = await get_table(db, table_id)
    allowed = {"name", "location", "capacity", "is_active"}
    changes = {key: value for key, value in data.items() if key in allowed}
    if "name" in changes:
        changes["name"] = _clean_name(changes["name"])
    if "is_active" in changes and changes["is_active"] is None:
        raise ValidationFailedError("is_active must be true or false")

    for key, value in changes.items():
        setattr(table, key, value)
    await db.commit()
    await db.refresh(table)
    return table


async def deactivate_table(db: AsyncSession, table_id: int) -> LoyaltyTable:
    table = await get_table(db, table_id)
    table.is_active = False
    await db.commit()
    await db.refresh(table)
    logger.info(f"Deactivated table {table.table_number}")
    return table


# ---------------------------------------------------
# POINTS
# ---------------------------------------------------
async def apply_points_delta(db: AsyncSession, table_id: int, delta: int, commit: bool = False) -> int:
    """
    Atomically add `delta` to the table balance and stamp last_points_update.

    The increment runs in the database (`points = points + delta`) so
    concurrent writers never lose updates. Returns the new balance.
    The caller owns the transaction unless `commit` is set.
    """
    stmt = (
        update(LoyaltyTable)
        .where(LoyaltyTable.id == table_id, LoyaltyTable.points + delta >= 0)
        .values(points=LoyaltyTable.points + delta, last_points_update=local_now())
        .returning(LoyaltyTable.points)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    new_points = result.scalar_one_or_none()

    if new_points is None:
        exists = await db.execute(select(LoyaltyTable.points).where(LoyaltyTable.id == table_id))
        current = exists.scalar_one_or_none()
        if current is None:
            raise NotFoundError("Table not found")
        raise InsufficientPointsError(f"Insufficient points: balance {current}, requested {-delta}")

    if commit:
        await db.commit()
    return new_points


async def reset_all_points(db: AsyncSession) -> int:
    now = local_now()
    result = await db.execute(
        update(LoyaltyTable)
        .where(LoyaltyTable.is_active == True)
        .values(points=0, last_points_update=now, points_reset_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info(f"Reset points for {result.rowcount} tables")
    return result.rowcount


# ---------------------------------------------------
# STATS
# ---------------------------------------------------
async def table_stats(db: AsyncSession) -> dict:
    result = await db.execute(
        select(
            func.count(LoyaltyTable.id),
            func.coalesce(func.sum(LoyaltyTable.points), 0),
            func.coalesce(func.avg(LoyaltyTable.points), 0),
            func.coalesce(func.max(LoyaltyTable.points), 0),
            func.coalesce(func.min(LoyaltyTable.points), 0),
        ).where(LoyaltyTable.is_active == True)
    )
    total, total_points, avg_points, max_points, min_points = result.one()
    return {
        "total_tables": total,
        "total_points": int(total_points),
        "average_points": round(float(avg_points), 2),
        "max_points": int(max_points),
        "min_points": int(min_points),
    }
