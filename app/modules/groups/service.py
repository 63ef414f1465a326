from __future__ import annotations

from app.database.document_store import DocumentStore, BatchWrite, GROUPS, SESSIONS, USERS
from app.modules.groups.schemas import GroupResponse, GroupMemberResponse, GroupWithMembersResponse
from app.core.errors import ErrorCode
from app.core.results import DatabaseResult, fail, ok, unknown_error
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_group(self, name: str, host_id: str) -> DatabaseResult[GroupResponse]:
        """Create a group hosted by host_id; the host becomes its first member"""
        try:
            host = await self.store.get(USERS, host_id)
            if not host:
                return fail(ErrorCode.USER_NOT_FOUND, "Host user not found")

            now = datetime.now(timezone.utc).isoformat()
            group = await self.store.create(GROUPS, {
                "name": name.strip(),
                "host_id": host_id,
                "host_name": host["username"],
                "member_ids": [host_id],
                "created_at": now,
                "updated_at": now
            })
        except Exception as e:
            return unknown_error("create group", e)

        # Host membership goes through the same batch primitive as join_group
        try:
            await self.store.batch([
                BatchWrite(collection=GROUPS, doc_id=group["id"], array_append={"member_ids": host_id}),
                BatchWrite(collection=USERS, doc_id=host_id, array_append={"group_ids": group["id"]}),
            ])
        except Exception as e:
            logger.error(f"Host membership for group {group['id']} failed, removing group: {e}")
            try:
                await self.store.delete(GROUPS, group["id"])
            except Exception as cleanup_error:
                logger.error(f"Could not remove orphaned group {group['id']}: {cleanup_error}")
            return unknown_error("create group", e)

        logger.info(f"Created group {group['id']} hosted by {host_id}")
        return ok(GroupResponse(**group))

    async def get_group_by_id(self, group_id: str) -> DatabaseResult[GroupResponse]:
        try:
            data = await self.store.get(GROUPS, group_id)
            if not data:
                return fail(ErrorCode.GROUP_NOT_FOUND, "Group not found")
            return ok(GroupResponse(**data))
        except Exception as e:
            return unknown_error("get group", e)

    async def get_group_with_members(self, group_id: str) -> DatabaseResult[GroupWithMembersResponse]:
        """Group plus member usernames and number of sessions"""
        try:
            group = await self.store.get(GROUPS, group_id)
            if not group:
                return fail(ErrorCode.GROUP_NOT_FOUND, "Group not found")

            users = await self.store.query(USERS, one_of={"id": group["member_ids"]}) if group["member_ids"] else []
            by_id = {u["id"]: u for u in users}
            members = [
                GroupMemberResponse(
                    id=member_id,
                    username=by_id[member_id]["username"],
                    is_host=member_id == group["host_id"]
                )
                for member_id in group["member_ids"]
                if member_id in by_id
            ]

            sessions = await self.store.query(SESSIONS, equals={"group_id": group_id})

            return ok(GroupWithMembersResponse(**group, members=members, session_count=len(sessions)))
        except Exception as e:
            return unknown_error("get group with members", e)
