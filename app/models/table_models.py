# app/models/table_models.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Index, CheckConstraint
from app.core.db import Base
from app.utils.time_utils import local_now


class LoyaltyTable(Base):
    """One physical table, i.e. one loyalty account identified by its QR code."""

    __tablename__ = "loyalty_tables"
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_loyalty_tables_points_non_negative"),
        # leaderboard order
        Index("ix_loyalty_tables_ranking", "points", "last_points_update"),
    )

    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(Integer, unique=True, nullable=False, index=True)
    name = Column(String(50), nullable=False)
    qr_code = Column(String, unique=True, nullable=False, index=True)
    qr_code_image = Column(Text, nullable=True)

    points = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_points_update = Column(DateTime, nullable=False, default=local_now)
    points_reset_at = Column(DateTime, nullable=True)

    location = Column(String(100), nullable=True)
    capacity = Column(Integer, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)
