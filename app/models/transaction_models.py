# app/models/transaction_models.py
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.utils.time_utils import local_now


class TransactionType(str, enum.Enum):
    EARNED = "EARNED"
    REDEEMED = "REDEEMED"
    ADJUSTMENT = "ADJUSTMENT"
    BONUS = "BONUS"

    @property
    def sign(self) -> int:
        return -1 if self is TransactionType.REDEEMED else 1


class PointTransaction(Base):
    """
    One immutable ledger entry. `points` is always a positive magnitude,
    the direction comes from `type`. Only `is_active` may change after insert.
    """

    __tablename__ = "point_transactions"
    __table_args__ = (
        Index("ix_point_transactions_table_created", "table_id", "created_at"),
        Index("ix_point_transactions_user_created", "assigned_by", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    table_id = Column(Integer, ForeignKey("loyalty_tables.id"), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    points = Column(Integer, nullable=False)
    type = Column(Enum(TransactionType, name="transaction_type"), nullable=False, default=TransactionType.EARNED, index=True)
    description = Column(String(200), nullable=True)

    # snapshot + provenance
    previous_points = Column(Integer, nullable=False)
    new_points = Column(Integer, nullable=False)
    user_agent = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=local_now, index=True)

    table = relationship("LoyaltyTable", lazy="selectin")
    assigned_by_user = relationship("User", lazy="selectin")

    @property
    def signed_points(self) -> int:
        return self.points * TransactionType(self.type).sign

    @property
    def points_difference(self) -> int:
        return self.new_points - self.previous_points
