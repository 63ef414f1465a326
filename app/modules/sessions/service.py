from __future__ import annotations

from app.database.document_store import DocumentStore, GROUPS, SESSIONS, USERS
from app.modules.sessions.schemas import (
    SessionCreate, SessionUpdate, SessionResponse, SessionFilter, SessionSummary
)
from app.core.errors import DatabaseException, ErrorCode, MutationRejected, describe_exception
from app.core.results import DatabaseResult, fail, ok, unknown_error
from app.config.settings import settings
from typing import Any, AsyncIterator, Callable, Dict, List, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

# Derives the fields to write from the session as it was read
FieldDeriver = Callable[[SessionResponse], Dict[str, Any]]


def _sorted_newest_first(sessions: List[SessionResponse]) -> List[SessionResponse]:
    return sorted(sessions, key=lambda s: s.session_date, reverse=True)


class SessionService:
    def __init__(self, store: DocumentStore, max_attempts: Optional[int] = None):
        self.store = store
        self.max_attempts = max_attempts or settings.session_write_attempts

    async def create_session(self, session_data: SessionCreate) -> DatabaseResult[SessionResponse]:
        """Create a session, copying the group's name and host as they are right now"""
        try:
            group = await self.store.get(GROUPS, session_data.group_id)
            if not group:
                return fail(ErrorCode.GROUP_NOT_FOUND, "Group not found")

            now = datetime.now(timezone.utc).isoformat()
            payload = session_data.model_dump(mode="json")
            insert_data = {
                "group_id": group["id"],
                "group_name": group["name"],
                "host_id": group["host_id"],
                "host_name": group["host_name"],
                "session_date": payload["session_date"],
                "is_confirmed": bool(session_data.is_confirmed),
                "host_notes": session_data.host_notes or "",
                "secret_notes": session_data.secret_notes or "",
                "external_availability": session_data.external_availability or "",
                "available_users": payload["available_users"] or [],
                "snacks": payload["snacks"] or [],
                "carpool": payload["carpool"] or [],
                "version": 1,
                "created_at": now,
                "updated_at": now
            }

            data = await self.store.create(SESSIONS, insert_data)
            logger.info(f"Created session {data['id']} for group {group['id']}")
            return ok(SessionResponse(**data))
        except Exception as e:
            return unknown_error("create session", e)

    async def get_session_by_id(self, session_id: str) -> DatabaseResult[SessionResponse]:
        try:
            data = await self.store.get(SESSIONS, session_id)
            if not data:
                return fail(ErrorCode.SESSION_NOT_FOUND, "Session not found")
            return ok(SessionResponse(**data))
        except Exception as e:
            return unknown_error("get session", e)

    async def apply(self, session_id: str, derive: FieldDeriver, operation: str) -> DatabaseResult[SessionResponse]:
        """
        Read-modify-write with optimistic concurrency. The write only lands if
        the session's version is still the one that was read; otherwise the
        fields are derived again from a fresh read.
        """
        try:
            for attempt in range(1, self.max_attempts + 1):
                data = await self.store.get(SESSIONS, session_id)
                if not data:
                    return fail(ErrorCode.SESSION_NOT_FOUND, "Session not found")
                current = SessionResponse(**data)

                try:
                    fields = derive(current)
                except MutationRejected as e:
                    return fail(e.code, e.message)

                fields["updated_at"] = datetime.now(timezone.utc).isoformat()
                fields["version"] = current.version + 1

                written = await self.store.update(
                    SESSIONS, session_id, fields, expected_version=current.version
                )
                if written is not None:
                    return ok(SessionResponse(**written))
                logger.warning(
                    f"Session {session_id} changed during {operation} "
                    f"(attempt {attempt}/{self.max_attempts}), retrying"
                )

            return fail(
                ErrorCode.CONCURRENT_MODIFICATION,
                "Session kept changing while saving; please try again"
            )
        except Exception as e:
            return unknown_error(operation, e)

    async def update_session(self, session_id: str, session_data: SessionUpdate) -> DatabaseResult[SessionResponse]:
        """Write only the fields present in session_data; None means leave as is"""
        fields = session_data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        return await self.apply(session_id, lambda current: dict(fields), "update session")

    async def delete_session(self, session_id: str) -> DatabaseResult[bool]:
        try:
            deleted = await self.store.delete(SESSIONS, session_id)
            if not deleted:
                return fail(ErrorCode.SESSION_NOT_FOUND, "Session not found")
            logger.info(f"Deleted session {session_id}")
            return ok(True)
        except Exception as e:
            return unknown_error("delete session", e)

    async def _group_sessions(self, group_id: str) -> List[SessionResponse]:
        result = await self.store.query(
            SESSIONS,
            equals={"group_id": group_id},
            order_by="session_date",
            descending=True
        )
        return [SessionResponse(**session) for session in result]

    async def get_group_sessions(self, group_id: str) -> DatabaseResult[List[SessionResponse]]:
        """Sessions of a group, newest session_date first"""
        try:
            return ok(_sorted_newest_first(await self._group_sessions(group_id)))
        except Exception as e:
            return unknown_error("get group sessions", e)

    async def find_sessions(self, session_filter: SessionFilter) -> DatabaseResult[List[SessionResponse]]:
        try:
            equals = {}
            if session_filter.group_id:
                equals["group_id"] = session_filter.group_id
            if session_filter.host_id:
                equals["host_id"] = session_filter.host_id
            if session_filter.is_confirmed is not None:
                equals["is_confirmed"] = session_filter.is_confirmed

            greater_equal = {}
            less_than = {}
            if session_filter.date_from:
                greater_equal["session_date"] = session_filter.date_from.isoformat()
            if session_filter.date_to:
                less_than["session_date"] = session_filter.date_to.isoformat()

            result = await self.store.query(
                SESSIONS,
                equals=equals,
                greater_equal=greater_equal,
                less_than=less_than,
                order_by="session_date",
                descending=True
            )
            return ok(_sorted_newest_first([SessionResponse(**s) for s in result]))
        except Exception as e:
            return unknown_error("find sessions", e)

    async def get_session_history(
        self,
        group_id: str,
        before: Optional[datetime] = None
    ) -> DatabaseResult[List[SessionSummary]]:
        """Past sessions of a group with the usernames of everyone who was available"""
        try:
            before = before or datetime.now(timezone.utc)
            result = await self.store.query(
                SESSIONS,
                equals={"group_id": group_id},
                less_than={"session_date": before.isoformat()},
                order_by="session_date",
                descending=True
            )
            sessions = _sorted_newest_first([SessionResponse(**s) for s in result])

            user_ids = sorted({u for s in sessions for u in s.available_users})
            users = await self.store.query(USERS, one_of={"id": user_ids}) if user_ids else []
            names = {u["id"]: u["username"] for u in users}

            return ok([
                SessionSummary(
                    id=s.id,
                    session_date=s.session_date,
                    is_confirmed=s.is_confirmed,
                    available_players=[names[u] for u in s.available_users if u in names]
                )
                for s in sessions
            ])
        except Exception as e:
            return unknown_error("get session history", e)

    async def stream_group_sessions(self, group_id: str) -> AsyncIterator[List[SessionResponse]]:
        """Full, freshly sorted list of a group's sessions on subscribe and after every change"""
        changes = self.store.watch(SESSIONS, equals={"group_id": group_id})
        try:
            async for _ in changes:
                yield _sorted_newest_first(await self._group_sessions(group_id))
        except Exception as e:
            logger.error(f"Group sessions stream for {group_id} failed: {e}")
            raise DatabaseException(
                ErrorCode.UNKNOWN_ERROR,
                "Lost the group sessions subscription",
                details=describe_exception(e)
            ) from e
        finally:
            await changes.aclose()
