from pydantic import BaseModel, field_validator
from typing import List, Optional
from datetime import datetime


class GroupCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Group name is required")
        return trimmed


class GroupResponse(BaseModel):
    id: str
    name: str
    host_id: str
    host_name: str  # username of the host when the group was created
    member_ids: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberResponse(BaseModel):
    id: str
    username: str
    is_host: bool


class GroupWithMembersResponse(BaseModel):
    id: str
    name: str
    host_id: str
    host_name: str
    member_ids: List[str] = []
    members: List[GroupMemberResponse]
    session_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True