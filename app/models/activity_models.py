# app/models/activity_models.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from app.core.db import Base
from app.utils.time_utils import local_now

class UserActivity(Base):
    __tablename__ = "user_activity"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    username = Column(String, nullable=False)
    method = Column(String(10), nullable=True)
    path = Column(String, nullable=True)
    message = Column(String, nullable=False)
    created_at = Column(DateTime, default=local_now, index=True)
