"""
Group membership.

A membership is recorded twice: the user's id in group.member_ids and the
group's id in user.group_ids. Both sides are written in one atomic batch so
the two lists never disagree.
"""

from __future__ import annotations

from app.database.document_store import DocumentStore, BatchWrite, GROUPS, USERS
from app.modules.groups.schemas import GroupResponse
from app.core.errors import ErrorCode
from app.core.results import DatabaseResult, fail, ok, unknown_error
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class MembershipService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def join_group(self, group_id: str, user_id: str) -> DatabaseResult[GroupResponse]:
        try:
            group = await self.store.get(GROUPS, group_id)
            if not group:
                return fail(ErrorCode.GROUP_NOT_FOUND, "Group not found")
            if user_id in group["member_ids"]:
                return fail(ErrorCode.ALREADY_MEMBER, "User is already a member of this group")
            if not await self.store.get(USERS, user_id):
                return fail(ErrorCode.USER_NOT_FOUND, "User not found")

            await self.store.batch([
                BatchWrite(
                    collection=GROUPS,
                    doc_id=group_id,
                    fields={"updated_at": datetime.now(timezone.utc).isoformat()},
                    array_append={"member_ids": user_id}
                ),
                BatchWrite(collection=USERS, doc_id=user_id, array_append={"group_ids": group_id}),
            ])
            logger.info(f"User {user_id} joined group {group_id}")

            return ok(GroupResponse(**await self.store.get(GROUPS, group_id)))
        except Exception as e:
            return unknown_error("join group", e)

    async def leave_group(self, group_id: str, user_id: str) -> DatabaseResult[GroupResponse]:
        """Remove a member. The host can never leave their own group."""
        try:
            group = await self.store.get(GROUPS, group_id)
            if not group:
                return fail(ErrorCode.GROUP_NOT_FOUND, "Group not found")
            if group["host_id"] == user_id:
                return fail(ErrorCode.HOST_CANNOT_LEAVE, "The host cannot leave their own group")
            if not await self.store.get(USERS, user_id):
                return fail(ErrorCode.USER_NOT_FOUND, "User not found")

            await self.store.batch([
                BatchWrite(
                    collection=GROUPS,
                    doc_id=group_id,
                    fields={"updated_at": datetime.now(timezone.utc).isoformat()},
                    array_remove={"member_ids": user_id}
                ),
                BatchWrite(collection=USERS, doc_id=user_id, array_remove={"group_ids": group_id}),
            ])
            logger.info(f"User {user_id} left group {group_id}")

            return ok(GroupResponse(**await self.store.get(GROUPS, group_id)))
        except Exception as e:
            return unknown_error("leave group", e)
