# app/services/ledger_service.py
"""
Append-only ledger of point-changing events.

Entries are never updated after insert apart from the `is_active` flag,
and soft deleting an entry never touches the table balance.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import LEDGER_MAX_POINTS
from app.core.exceptions import NotFoundError, ValidationFailedError
from app.models.table_models import LoyaltyTable
from app.models.transaction_models import PointTransaction, TransactionType
from app.utils.time_utils import local_day_bounds, local_now

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTIONS = {
    TransactionType.EARNED: "Points awarded by cashier",
    TransactionType.REDEEMED: "Points redeemed",
    TransactionType.BONUS: "Bonus points",
    TransactionType.ADJUSTMENT: "Points adjustment",
}


@dataclass
class Provenance:
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass
class TransactionFilter:
    """Optional listing filters; a None field is not applied."""

    table_id: Optional[int] = None
    assigned_by: Optional[int] = None
    type: Optional[TransactionType] = None
    include_inactive: bool = False

    def apply(self, stmt):
        if not self.include_inactive:
            stmt = stmt.where(PointTransaction.is_active == True)
        if self.table_id is not None:
            stmt = stmt.where(PointTransaction.table_id == self.table_id)
        if self.assigned_by is not None:
            stmt = stmt.where(PointTransaction.assigned_by == self.assigned_by)
        if self.type is not None:
            stmt = stmt.where(PointTransaction.type == self.type)
        return stmt


def _newest_first(stmt):
    return stmt.order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())


# ---------------------------------------------------
# APPEND
# ---------------------------------------------------
async def append_transaction(
    db: AsyncSession,
    table_id: int,
    acting_user_id: int,
    points: int,
    type: TransactionType,
    description: Optional[str],
    previous_points: int,
    new_points: int,
    provenance: Optional[Provenance] = None,
    commit: bool = False,
) -> PointTransaction:
    """
    Add one ledger entry. The caller owns the transaction unless `commit` is set,
    so the entry can share a unit of work with the balance change it records.
    """
    if isinstance(points, bool) or not isinstance(points, int) or not 1 <= points <= LEDGER_MAX_POINTS:
        raise ValidationFailedError(f"Ledger points must be an integer between 1 and {LEDGER_MAX_POINTS}")

    type = TransactionType(type)
    if new_points - previous_points != points * type.sign:
        raise ValidationFailedError(
            f"Snapshot {previous_points} -> {new_points} does not match {type.value} of {points}"
        )

    text = (description or "").strip() or DEFAULT_DESCRIPTIONS[type]
    if len(text) > 200:
        raise ValidationFailedError("Description cannot exceed 200 characters")

    provenance = provenance or Provenance()
    entry = PointTransaction(
        table_id=table_id,
        assigned_by=acting_user_id,
        points=points,
        type=type,
        description=text,
        previous_points=previous_points,
        new_points=new_points,
        user_agent=provenance.user_agent,
        ip_address=provenance.ip_address,
        is_active=True,
        created_at=local_now(),
    )
    db.add(entry)
    await db.flush()

    if commit:
        await db.commit()
        await db.refresh(entry)
    return entry


# ---------------------------------------------------
# QUERIES
# ---------------------------------------------------
async def get_transaction(db: AsyncSession, transaction_id: int) -> PointTransaction:
    entry = await db.get(PointTransaction, transaction_id)
    if not entry:
        raise NotFoundError("Transaction not found")
    return entry


async def history_for_table(db: AsyncSession, table_id: int, limit: int = 10) -> List[PointTransaction]:
    stmt = TransactionFilter(table_id=table_id).apply(select(PointTransaction))
    result = await db.execute(_newest_first(stmt).limit(limit))
    return result.scalars().all()


async def activity_for_user(db: AsyncSession, user_id: int, limit: int = 20) -> List[PointTransaction]:
    stmt = TransactionFilter(assigned_by=user_id).apply(select(PointTransaction))
    result = await db.execute(_newest_first(stmt).limit(limit))
    return result.scalars().all()


async def list_transactions(
    db: AsyncSession,
    filters: Optional[TransactionFilter] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[int, List[PointTransaction]]:
    filters = filters or TransactionFilter()

    count_stmt = filters.apply(select(func.count(PointTransaction.id)))
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = filters.apply(select(PointTransaction))
    stmt = _newest_first(stmt).offset((page - 1) * limit).limit(limit)
    result = await db.execute(stmt)
    return total, result.scalars().all()


async def daily_aggregate(db: AsyncSession, day: Optional[date] = None) -> dict:
    """
    Group the active entries of one server-local calendar day by type.
    """
    day = day or local_now().date()
    start, end = local_day_bounds(day)

    stmt = (
        select(
            PointTransaction.type,
            func.count(PointTransaction.id),
            func.coalesce(func.sum(PointTransaction.points), 0),
            func.avg(PointTransaction.points),
        )
        .where(
            PointTransaction.is_active == True,
            PointTransaction.created_at >= start,
            PointTransaction.created_at <= end,
        )
        .group_by(PointTransaction.type)
    )
    rows = (await db.execute(stmt)).all()

    by_type = {}
    total_points = 0
    total_transactions = 0
    for tx_type, count, points_sum, avg_points in rows:
        by_type[TransactionType(tx_type)] = {
            "count": count,
            "total_points": int(points_sum),
            "avg_points": round(float(avg_points or 0), 2),
        }
        total_points += int(points_sum)
        total_transactions += count

    return {
        "summary": {
            "date": day,
            "total_points": total_points,
            "total_transactions": total_transactions,
            "average_points": round(total_points / total_transactions, 2) if total_transactions else 0,
        },
        "by_type": by_type,
    }


# ---------------------------------------------------
# SOFT DELETE
# ---------------------------------------------------
async def soft_delete_transaction(db: AsyncSession, transaction_id: int) -> PointTransaction:
    """Hide an entry from history. Audit correction only, the balance is left as is."""
    entry = await get_transaction(db, transaction_id)
    entry.is_active = False
    await db.commit()
    await db.refresh(entry)
    logger.info(f"Soft deleted transaction {entry.id} of table {entry.table_id}")
    return entry


# ---------------------------------------------------
# RECONCILIATION
# ---------------------------------------------------
async def reconcile(db: AsyncSession) -> List[dict]:
    """
    Compare every active table's balance with the signed sum of its active
    ledger entries since the last points reset. Read-only.
    """
    signed = case(
        (PointTransaction.type == TransactionType.REDEEMED, -PointTransaction.points),
        else_=PointTransaction.points,
    )
    ledger_sum = (
        select(func.coalesce(func.sum(signed), 0))
        .where(
            PointTransaction.table_id == LoyaltyTable.id,
            PointTransaction.is_active == True,
            (LoyaltyTable.points_reset_at == None) | (PointTransaction.created_at >= LoyaltyTable.points_reset_at),
        )
        .correlate(LoyaltyTable)
        .scalar_subquery()
    )
    stmt = (
        select(LoyaltyTable.id, LoyaltyTable.table_number, LoyaltyTable.qr_code, LoyaltyTable.points, ledger_sum)
        .where(LoyaltyTable.is_active == True)
        .order_by(LoyaltyTable.table_number)
    )
    report = []
    for table_id, table_number, qr_code, points, ledger_points in (await db.execute(stmt)).all():
        ledger_points = int(ledger_points)
        report.append({
            "table_id": table_id,
            "table_number": table_number,
            "qr_code": qr_code,
            "points": points,
            "ledger_points": ledger_points,
            "drift": points - ledger_points,
            "in_sync": points == ledger_points,
        })
    drifted = sum(1 for r in report if not r["in_sync"])
    if drifted:
        logger.warning(f"Ledger reconciliation found {drifted} table(s) out of sync")
    return report
