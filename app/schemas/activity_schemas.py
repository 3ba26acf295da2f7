# app/schemas/activity_schemas.py
from pydantic import BaseModel
from datetime import datetime
from typing import List

class UserActivityOut(BaseModel):
    id: int
    account_id: str
    message: str
    created_at: datetime

    class Config:
        from_attributes = True

class UserActivityListResponse(BaseModel):
    message: str
    total: int
    data: List[UserActivityOut]
