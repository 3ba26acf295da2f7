# app/models/activity_models.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.core.db import Base

class UserActivity(Base):
    __tablename__ = "user_activity"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String, nullable=False, index=True)

    message = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
