from fastapi import APIRouter, Depends
from app.database.document_store import DocumentStore
from app.modules.memberships.service import MembershipService
from app.modules.groups.schemas import GroupResponse
from app.modules.users.schemas import UserResponse
from app.core.dependencies import get_store, get_current_user, check_self, unwrap

router = APIRouter(prefix="/groups", tags=["memberships"])


def get_membership_service(store: DocumentStore = Depends(get_store)) -> MembershipService:
    return MembershipService(store)


@router.post("/{group_id}/members", response_model=GroupResponse, status_code=201)
async def join_group(
    group_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Join a group using its id (the shareable group code)"""
    return unwrap(await service.join_group(group_id, current_user.id))


@router.delete("/{group_id}/members/{user_id}", response_model=GroupResponse)
async def leave_group(
    group_id: str,
    user_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Leave a group. Members can only remove themselves; the host cannot leave."""
    check_self(current_user, user_id)
    return unwrap(await service.leave_group(group_id, user_id))
