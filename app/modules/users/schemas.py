from pydantic import BaseModel, field_validator
from typing import List
from datetime import datetime

from app.modules.groups.schemas import GroupResponse

USERNAME_MIN_LENGTH = 3


def normalize_username(username: str) -> str:
    """Trim and check length; raises ValueError when unusable"""
    trimmed = (username or "").strip()
    if not trimmed:
        raise ValueError("Username is required")
    if len(trimmed) < USERNAME_MIN_LENGTH:
        raise ValueError(f"Username must be at least {USERNAME_MIN_LENGTH} characters long")
    return trimmed


class UserCreate(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        return normalize_username(value)


class UserResponse(BaseModel):
    id: str
    username: str
    group_ids: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class UserWithGroupsResponse(BaseModel):
    id: str
    username: str
    group_ids: List[str] = []
    groups: List[GroupResponse]
    created_at: datetime

    class Config:
        from_attributes = True
