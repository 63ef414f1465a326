from __future__ import annotations

from app.database.document_store import DocumentStore, GROUPS, USERS
from app.modules.users.schemas import UserResponse, UserWithGroupsResponse, normalize_username
from app.modules.groups.schemas import GroupResponse
from app.core.errors import DatabaseException, ErrorCode, describe_exception
from app.core.results import DatabaseResult, fail, ok, unknown_error
from typing import AsyncIterator, List
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class UserService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_user(self, username: str) -> DatabaseResult[UserResponse]:
        """Create a user with no groups. Usernames are unique and case-sensitive."""
        try:
            username = normalize_username(username)
        except ValueError as e:
            return fail(ErrorCode.INVALID_USERNAME, str(e))

        try:
            existing = await self.store.query(USERS, equals={"username": username})
            if existing:
                return fail(ErrorCode.USERNAME_EXISTS, f"Username '{username}' is already taken")

            data = await self.store.create(USERS, {
                "username": username,
                "group_ids": [],
                "created_at": datetime.now(timezone.utc).isoformat()
            })
            logger.info(f"Created user {data['id']} ({username})")
            return ok(UserResponse(**data))
        except Exception as e:
            # Lost the race against a concurrent registration of the same name
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                return fail(ErrorCode.USERNAME_EXISTS, f"Username '{username}' is already taken")
            return unknown_error("create user", e)

    async def get_user_by_username(self, username: str) -> DatabaseResult[UserResponse]:
        try:
            result = await self.store.query(USERS, equals={"username": username.strip()})
            if not result:
                return fail(ErrorCode.USER_NOT_FOUND, f"User '{username}' not found")
            return ok(UserResponse(**result[0]))
        except Exception as e:
            return unknown_error("get user by username", e)

    async def get_user_by_id(self, user_id: str) -> DatabaseResult[UserResponse]:
        try:
            data = await self.store.get(USERS, user_id)
            if not data:
                return fail(ErrorCode.USER_NOT_FOUND, "User not found")
            return ok(UserResponse(**data))
        except Exception as e:
            return unknown_error("get user", e)

    async def _groups_of(self, user_id: str) -> List[GroupResponse]:
        result = await self.store.query(
            GROUPS,
            contains={"member_ids": user_id},
            order_by="created_at",
            descending=True
        )
        return [GroupResponse(**group) for group in result]

    async def get_user_groups(self, user_id: str) -> DatabaseResult[List[GroupResponse]]:
        """Get all groups the user is a member of"""
        try:
            return ok(await self._groups_of(user_id))
        except Exception as e:
            return unknown_error("get user groups", e)

    async def get_user_with_groups(self, user_id: str) -> DatabaseResult[UserWithGroupsResponse]:
        try:
            data = await self.store.get(USERS, user_id)
            if not data:
                return fail(ErrorCode.USER_NOT_FOUND, "User not found")
            groups = await self._groups_of(user_id)
            return ok(UserWithGroupsResponse(**data, groups=groups))
        except Exception as e:
            return unknown_error("get user with groups", e)

    async def stream_user_groups(self, user_id: str) -> AsyncIterator[List[GroupResponse]]:
        """
        Full list of the user's groups, re-sent whenever the groups collection
        changes. Membership lives in an array column, which realtime cannot
        filter on, so every group change triggers a fresh query.
        """
        changes = self.store.watch(GROUPS)
        try:
            async for _ in changes:
                yield await self._groups_of(user_id)
        except Exception as e:
            logger.error(f"User groups stream for {user_id} failed: {e}")
            raise DatabaseException(
                ErrorCode.UNKNOWN_ERROR,
                "Lost the user groups subscription",
                details=describe_exception(e)
            ) from e
        finally:
            await changes.aclose()
