# Файл: sensory_drive/models/user.py

from __future__ import annotations
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=72)


class UserInDB(BaseModel):
    id: UUID
    email: str
    name: str
    is_active: bool
    storage_used: int
    storage_limit: int
    created_at: datetime

    model_config = {"from_attributes": True}


# Личность вызывающего, которую сервер явно передаёт в каждую операцию
class Identity(BaseModel):
    user_id: UUID
    email: str | None = None
