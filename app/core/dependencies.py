"""
Core dependencies for routes: the document store, the acting user and the
translation of service results into HTTP responses.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from app.database.document_store import DocumentStore, get_document_store
from app.modules.users.service import UserService
from app.modules.users.schemas import UserResponse
from app.modules.groups.schemas import GroupResponse
from app.core.errors import ErrorCode, NOT_FOUND_CODES, CONFLICT_CODES, VALIDATION_CODES
from app.core.results import DatabaseResult, Failure
from typing import TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_store() -> DocumentStore:
    return await get_document_store()


def get_user_service(store: DocumentStore = Depends(get_store)) -> UserService:
    return UserService(store)


def status_for(code: ErrorCode) -> int:
    if code in NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    if code in CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    if code in VALIDATION_CODES:
        return 422
    if code == ErrorCode.NOT_HOST:
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_for_failure(failure: Failure) -> None:
    error = failure.error
    status_code = status_for(error.code)
    if status_code >= 500:
        logger.error(f"{error.code.value}: {error.message} ({error.details})")
        raise HTTPException(
            status_code=status_code,
            detail={"code": error.code.value, "message": error.message}
        )
    raise HTTPException(status_code=status_code, detail=error.model_dump(mode="json", exclude_none=True))


def unwrap(result: DatabaseResult[T]) -> T:
    """Return the data of a successful result or raise the matching HTTPException"""
    if not result.success:
        raise_for_failure(result)
    return result.data


async def get_current_user(
    x_user_id: str = Header(..., description="Id of the user performing the request"),
    users: UserService = Depends(get_user_service)
) -> UserResponse:
    """The acting user is passed explicitly with every request and must exist"""
    result = await users.get_user_by_id(x_user_id)
    if not result.success:
        if result.error.code == ErrorCode.USER_NOT_FOUND:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unknown user"
            )
        raise_for_failure(result)
    return result.data


def check_group_member(group: GroupResponse, user: UserResponse) -> None:
    if user.id not in group.member_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a member of this group"
        )


def check_self(user: UserResponse, user_id: str) -> None:
    if user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only act on your own behalf"
        )
