from fastapi import APIRouter, Depends
from app.modules.users.schemas import UserCreate, UserResponse, UserWithGroupsResponse
from app.modules.users.service import UserService
from app.modules.groups.schemas import GroupResponse
from app.core.dependencies import get_user_service, get_current_user, check_self, unwrap
from app.core.streaming import event_stream_response
from typing import List

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    service: UserService = Depends(get_user_service)
):
    """Create an account (username only, at least 3 characters)"""
    return unwrap(await service.create_user(user_data.username))


@router.get("/by-username/{username}", response_model=UserResponse)
async def get_user_by_username(
    username: str,
    service: UserService = Depends(get_user_service)
):
    """Look up a user by exact username; used to log in"""
    return unwrap(await service.get_user_by_username(username))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return unwrap(await service.get_user_by_id(user_id))


@router.get("/{user_id}/groups", response_model=List[GroupResponse])
async def get_user_groups(
    user_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Get all groups for a user (only for yourself)"""
    check_self(current_user, user_id)
    return unwrap(await service.get_user_groups(user_id))


@router.get("/{user_id}/with-groups", response_model=UserWithGroupsResponse)
async def get_user_with_groups(
    user_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    check_self(current_user, user_id)
    return unwrap(await service.get_user_with_groups(user_id))


@router.get("/{user_id}/groups/stream")
async def stream_user_groups(
    user_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Server-sent events: the full group list on connect and after every change"""
    check_self(current_user, user_id)
    return event_stream_response(service.stream_user_groups(user_id))
