"""
User schemas (row model and request bodies).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    id: int
    username: str
    email: str
    date_registered: datetime | None = None


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=320)


class UserUpdateRequest(UserCreateRequest):
    pass
