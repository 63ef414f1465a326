from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime
from app.database.document_store import DocumentStore
from app.modules.sessions.schemas import (
    SessionCreate, SessionUpdate, SessionResponse, SessionFilter,
    SnackCreate, CarpoolCreate, CarpoolJoin, TextFieldUpdate, ConfirmationUpdate
)
from app.modules.sessions.service import SessionService
from app.modules.sessions.mutations import SessionMutationService
from app.modules.groups.service import GroupService
from app.modules.users.schemas import UserResponse
from app.core.dependencies import get_store, get_current_user, check_group_member, unwrap
from typing import List, Optional

router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_session_service(store: DocumentStore = Depends(get_store)) -> SessionService:
    return SessionService(store)


def get_mutation_service(sessions: SessionService = Depends(get_session_service)) -> SessionMutationService:
    return SessionMutationService(sessions)


def visible_to(session: SessionResponse, user: UserResponse) -> SessionResponse:
    """Secret notes are for the host's eyes only"""
    if session.host_id == user.id:
        return session
    return session.model_copy(update={"secret_notes": ""})


async def load_session_for_member(
    session_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
    store: DocumentStore = Depends(get_store)
) -> SessionResponse:
    session = unwrap(await service.get_session_by_id(session_id))
    group = unwrap(await GroupService(store).get_group_by_id(session.group_id))
    check_group_member(group, current_user)
    return session


def check_host(session: SessionResponse, user: UserResponse) -> None:
    if session.host_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the host can change this session"
        )


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    session_data: SessionCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
    store: DocumentStore = Depends(get_store)
):
    """Schedule a session (group host only)"""
    group = unwrap(await GroupService(store).get_group_by_id(session_data.group_id))
    if group.host_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the group host can schedule sessions"
        )
    return unwrap(await service.create_session(session_data))


@router.get("", response_model=List[SessionResponse])
async def find_sessions(
    group_id: Optional[str] = None,
    host_id: Optional[str] = None,
    is_confirmed: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Sessions across the current user's groups, optionally filtered"""
    result = unwrap(await service.find_sessions(SessionFilter(
        group_id=group_id,
        host_id=host_id,
        is_confirmed=is_confirmed,
        date_from=date_from,
        date_to=date_to
    )))
    return [visible_to(s, current_user) for s in result if s.group_id in current_user.group_ids]


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session: SessionResponse = Depends(load_session_for_member),
    current_user: UserResponse = Depends(get_current_user)
):
    return visible_to(session, current_user)


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: str,
    session_data: SessionUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Update any subset of fields (host only)"""
    check_host(unwrap(await service.get_session_by_id(session_id)), current_user)
    return unwrap(await service.update_session(session_id, session_data))


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    check_host(unwrap(await service.get_session_by_id(session_id)), current_user)
    unwrap(await service.delete_session(session_id))
    return None


# Availability

@router.post(
    "/{session_id}/availability",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def confirm_availability(
    session_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    session = unwrap(await service.confirm_availability(session_id, current_user.id))
    return visible_to(session, current_user)


@router.delete(
    "/{session_id}/availability",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def remove_availability(
    session_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    session = unwrap(await service.remove_availability(session_id, current_user.id))
    return visible_to(session, current_user)


# Snacks

@router.put(
    "/{session_id}/snack",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def add_snack(
    session_id: str,
    snack: SnackCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    """Set what you are bringing; replaces your previous snack"""
    session = unwrap(await service.add_snack(
        session_id, current_user.id, current_user.username, snack.snack_description
    ))
    return visible_to(session, current_user)


@router.delete(
    "/{session_id}/snack",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def remove_snack(
    session_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    session = unwrap(await service.remove_snack(session_id, current_user.id))
    return visible_to(session, current_user)


# Carpools

@router.put(
    "/{session_id}/carpool",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def add_carpool(
    session_id: str,
    carpool: CarpoolCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    """Offer a ride with 1-10 seats; replaces your previous offer"""
    session = unwrap(await service.add_carpool(
        session_id, current_user.id, current_user.username, carpool.capacity
    ))
    return visible_to(session, current_user)


@router.post(
    "/{session_id}/carpool/join",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def join_carpool(
    session_id: str,
    request: CarpoolJoin,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    session = unwrap(await service.join_carpool(
        session_id, request.driver_id, current_user.id, current_user.username
    ))
    return visible_to(session, current_user)


@router.delete(
    "/{session_id}/carpool",
    response_model=SessionResponse,
    dependencies=[Depends(load_session_for_member)]
)
async def leave_carpool(
    session_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    """Give up your seat, or withdraw your ride offer (its passengers lose their seats)"""
    session = unwrap(await service.leave_carpool(session_id, current_user.id))
    return visible_to(session, current_user)


# Host-only fields

@router.put("/{session_id}/host-notes", response_model=SessionResponse)
async def set_host_notes(
    session_id: str,
    update: TextFieldUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    return unwrap(await service.set_host_notes(session_id, current_user.id, update.value))


@router.put("/{session_id}/secret-notes", response_model=SessionResponse)
async def set_secret_notes(
    session_id: str,
    update: TextFieldUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    return unwrap(await service.set_secret_notes(session_id, current_user.id, update.value))


@router.put("/{session_id}/external-availability", response_model=SessionResponse)
async def set_external_availability(
    session_id: str,
    update: TextFieldUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    return unwrap(await service.set_external_availability(session_id, current_user.id, update.value))


@router.put("/{session_id}/confirmation", response_model=SessionResponse)
async def set_confirmation(
    session_id: str,
    update: ConfirmationUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: SessionMutationService = Depends(get_mutation_service)
):
    """Confirm or unconfirm; omit is_confirmed to toggle"""
    return unwrap(await service.set_confirmation(session_id, current_user.id, update.is_confirmed))
