from fastapi import APIRouter, Depends
from datetime import datetime
from app.database.document_store import DocumentStore
from app.modules.groups.schemas import GroupCreate, GroupResponse, GroupWithMembersResponse
from app.modules.groups.service import GroupService
from app.modules.users.schemas import UserResponse
from app.modules.sessions.schemas import SessionResponse, SessionSummary
from app.modules.sessions.service import SessionService
from app.modules.sessions.routes import get_session_service, visible_to
from app.core.dependencies import get_store, get_current_user, check_group_member, unwrap
from app.core.streaming import event_stream_response
from typing import List, Optional

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(store: DocumentStore = Depends(get_store)) -> GroupService:
    return GroupService(store)


async def load_group_for_member(
    group_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
) -> GroupResponse:
    group = unwrap(await service.get_group_by_id(group_id))
    check_group_member(group, current_user)
    return group


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group hosted by the current user"""
    return unwrap(await service.create_group(group_data.name, current_user.id))


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(group: GroupResponse = Depends(load_group_for_member)):
    """Get group by ID (only if user is a member)"""
    return group


@router.get("/{group_id}/with-members", response_model=GroupWithMembersResponse)
async def get_group_with_members(
    group: GroupResponse = Depends(load_group_for_member),
    service: GroupService = Depends(get_group_service)
):
    return unwrap(await service.get_group_with_members(group.id))


@router.get("/{group_id}/sessions", response_model=List[SessionResponse])
async def get_group_sessions(
    group: GroupResponse = Depends(load_group_for_member),
    current_user: UserResponse = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service)
):
    """Sessions of the group, most recent date first"""
    result = unwrap(await sessions.get_group_sessions(group.id))
    return [visible_to(s, current_user) for s in result]


@router.get("/{group_id}/sessions/stream")
async def stream_group_sessions(
    group: GroupResponse = Depends(load_group_for_member),
    current_user: UserResponse = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service)
):
    """Server-sent events: the full session list on connect and after every change"""
    return event_stream_response(
        sessions.stream_group_sessions(group.id),
        transform=lambda s: visible_to(s, current_user)
    )


@router.get("/{group_id}/history", response_model=List[SessionSummary])
async def get_campaign_history(
    before: Optional[datetime] = None,
    group: GroupResponse = Depends(load_group_for_member),
    sessions: SessionService = Depends(get_session_service)
):
    """Past sessions with the players who were available for each"""
    return unwrap(await sessions.get_session_history(group.id, before))
