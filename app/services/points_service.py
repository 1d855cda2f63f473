# app/services/points_service.py
"""
The only entry point allowed to change a table's balance.

Each award/redeem runs the balance increment and the ledger append in one
database transaction: either both are committed or neither is.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import (
    MIN_POINTS_PER_TRANSACTION,
    MAX_POINTS_PER_TRANSACTION,
    ROLE_ADMIN,
    ROLE_CASHIER,
)
from app.core.exceptions import (
    InsufficientPointsError,
    LoyaltyError,
    NotFoundError,
    StorageFailureError,
    TableInactiveError,
    UnauthorizedError,
    ValidationFailedError,
)
from app.models.transaction_models import TransactionType
from app.services import ledger_service, table_service
from app.utils.request_context import RequestContext

logger = logging.getLogger(__name__)

POINTS_ROLES = {ROLE_CASHIER, ROLE_ADMIN}


def _authorize(ctx: RequestContext) -> None:
    user = ctx.user
    if user is None or not user.is_active:
        raise UnauthorizedError("User not authenticated", status_code=401)
    if (user.role or "").lower() not in POINTS_ROLES:
        raise UnauthorizedError("Only cashiers and admins can change table points")


def _validate_points(points) -> int:
    if isinstance(points, bool) or not isinstance(points, int):
        raise ValidationFailedError("Points must be an integer")
    if not MIN_POINTS_PER_TRANSACTION <= points <= MAX_POINTS_PER_TRANSACTION:
        raise ValidationFailedError(
            f"Points must be between {MIN_POINTS_PER_TRANSACTION} and {MAX_POINTS_PER_TRANSACTION}"
        )
    return points


async def _change_points(
    db: AsyncSession,
    qr_code: str,
    points: int,
    description: Optional[str],
    ctx: RequestContext,
    tx_type: TransactionType,
) -> dict:
    _authorize(ctx)

    table = await table_service.find_by_qr_code(db, qr_code, include_inactive=True)
    if not table:
        raise NotFoundError("Table not found")
    table_qr = table.qr_code
    if not table.is_active:
        raise TableInactiveError(f"{table.name} is not active")

    points = _validate_points(points)
    if tx_type is TransactionType.REDEEMED and table.points < points:
        raise InsufficientPointsError(f"Insufficient points: balance {table.points}, requested {points}")

    delta = points * tx_type.sign
    try:
        new_points = await table_service.apply_points_delta(db, table.id, delta)
        # derived from the atomic update so the snapshot is exact under concurrency
        previous_points = new_points - delta
        entry = await ledger_service.append_transaction(
            db,
            table_id=table.id,
            acting_user_id=ctx.user.id,
            points=points,
            type=tx_type,
            description=description,
            previous_points=previous_points,
            new_points=new_points,
            provenance=ctx.provenance,
        )
        await db.commit()
    except LoyaltyError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"{tx_type.value} of {points} on {table_qr} failed, balance change rolled back")
        raise StorageFailureError("Could not record the points transaction")

    await db.refresh(table)
    logger.info(
        f"{ctx.user.username} {tx_type.value} {points} points on {table.qr_code}: "
        f"{previous_points} -> {new_points}"
    )
    return {"table": table, "previous_points": previous_points, "transaction": entry}


async def award(
    db: AsyncSession,
    qr_code: str,
    points: int,
    description: Optional[str],
    ctx: RequestContext,
    tx_type: TransactionType = TransactionType.EARNED,
) -> dict:
    """Add points. `tx_type` may be EARNED, BONUS or ADJUSTMENT."""
    try:
        tx_type = TransactionType(tx_type)
    except ValueError:
        raise ValidationFailedError(f"Unknown transaction type '{tx_type}'")
    if tx_type is TransactionType.REDEEMED:
        raise ValidationFailedError("Use redeem to remove points")
    return await _change_points(db, qr_code, points, description, ctx, tx_type)


async def redeem(
    db: AsyncSession,
    qr_code: str,
    points: int,
    description: Optional[str],
    ctx: RequestContext,
) -> dict:
    return await _change_points(db, qr_code, points, description, ctx, TransactionType.REDEEMED)
