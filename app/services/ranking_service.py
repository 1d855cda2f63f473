# app/services/ranking_service.py
"""
Leaderboard ordering over active tables.

Higher points rank first; on equal points the table that reached its
score earlier (older last_points_update) ranks higher.
"""
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.table_models import LoyaltyTable
from app.services import table_service

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}

RANKING_ORDER = (
    LoyaltyTable.points.desc(),
    LoyaltyTable.last_points_update.asc(),
    LoyaltyTable.id.asc(),
)


def medal_for(position: int) -> Optional[str]:
    return MEDALS.get(position)


def ranked_entry(table: LoyaltyTable, position: Optional[int]) -> dict:
    return {
        "id": table.id,
        "table_number": table.table_number,
        "name": table.name,
        "qr_code": table.qr_code,
        "points": table.points,
        "last_points_update": table.last_points_update,
        "location": table.location,
        "capacity": table.capacity,
        "position": position,
        "medal": medal_for(position),
    }


async def leaderboard(db: AsyncSession) -> List[dict]:
    result = await db.execute(
        select(LoyaltyTable).where(LoyaltyTable.is_active == True).order_by(*RANKING_ORDER)
    )
    return [ranked_entry(t, i + 1) for i, t in enumerate(result.scalars().all())]


async def leaderboard_page(db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[int, List[dict]]:
    total = (
        await db.execute(select(func.count(LoyaltyTable.id)).where(LoyaltyTable.is_active == True))
    ).scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(
        select(LoyaltyTable)
        .where(LoyaltyTable.is_active == True)
        .order_by(*RANKING_ORDER)
        .offset(offset)
        .limit(limit)
    )
    return total, [ranked_entry(t, offset + i + 1) for i, t in enumerate(result.scalars().all())]


async def position_of(db: AsyncSession, table: LoyaltyTable) -> int:
    """
    1 + number of active tables strictly ahead of `table`.

    Counted in the database without building the full leaderboard, so the
    answer reflects whatever state was committed when the count ran.
    """
    ahead = await db.execute(
        select(func.count(LoyaltyTable.id)).where(
            LoyaltyTable.is_active == True,
            or_(
                LoyaltyTable.points > table.points,
                and_(
                    LoyaltyTable.points == table.points,
                    LoyaltyTable.last_points_update < table.last_points_update,
                ),
                and_(
                    LoyaltyTable.points == table.points,
                    LoyaltyTable.last_points_update == table.last_points_update,
                    LoyaltyTable.id < table.id,
                ),
            ),
        )
    )
    return (ahead.scalar() or 0) + 1


async def position_of_qr_code(db: AsyncSession, qr_code: str) -> int:
    table = await table_service.get_table_by_qr_code(db, qr_code)
    return await position_of(db, table)
