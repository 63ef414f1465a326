"""
Session coordination: availability, snacks, carpools and host-only fields.

Every operation rewrites exactly one field of the session document through
SessionService.apply, which retries on concurrent writes.
"""

from __future__ import annotations

from app.modules.sessions.service import SessionService
from app.modules.sessions.schemas import SessionResponse, SessionSnack, SessionPassenger, check_capacity
from app.modules.sessions import logistics
from app.core.errors import ErrorCode, MutationRejected
from app.core.results import DatabaseResult, fail
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def _dump(items) -> list:
    return [item.model_dump(mode="json") for item in items]


def _require_host(session: SessionResponse, acting_user_id: str) -> None:
    if session.host_id != acting_user_id:
        raise MutationRejected(ErrorCode.NOT_HOST, "Only the host can change this")


class SessionMutationService:
    def __init__(self, sessions: SessionService):
        self.sessions = sessions

    # Availability

    async def confirm_availability(self, session_id: str, user_id: str) -> DatabaseResult[SessionResponse]:
        return await self.sessions.apply(
            session_id,
            lambda s: {"available_users": logistics.with_available_user(s.available_users, user_id)},
            "confirm availability"
        )

    async def remove_availability(self, session_id: str, user_id: str) -> DatabaseResult[SessionResponse]:
        return await self.sessions.apply(
            session_id,
            lambda s: {"available_users": logistics.without_available_user(s.available_users, user_id)},
            "remove availability"
        )

    # Snacks

    async def add_snack(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        snack_description: str
    ) -> DatabaseResult[SessionResponse]:
        """Set the user's snack, replacing any earlier one"""
        snack = SessionSnack(user_id=user_id, user_name=user_name, snack_description=snack_description)
        return await self.sessions.apply(
            session_id,
            lambda s: {"snacks": _dump(logistics.with_snack(s.snacks, snack))},
            "add snack"
        )

    async def remove_snack(self, session_id: str, user_id: str) -> DatabaseResult[SessionResponse]:
        return await self.sessions.apply(
            session_id,
            lambda s: {"snacks": _dump(logistics.without_snack(s.snacks, user_id))},
            "remove snack"
        )

    # Carpools

    async def add_carpool(
        self,
        session_id: str,
        driver_id: str,
        driver_name: str,
        capacity: int
    ) -> DatabaseResult[SessionResponse]:
        """Offer (or replace) a ride. Capacity is checked before anything is written."""
        try:
            check_capacity(capacity)
        except ValueError as e:
            return fail(ErrorCode.INVALID_CAPACITY, str(e))
        return await self.sessions.apply(
            session_id,
            lambda s: {"carpool": _dump(logistics.with_carpool(s.carpool, driver_id, driver_name, capacity))},
            "add carpool"
        )

    async def join_carpool(
        self,
        session_id: str,
        driver_id: str,
        passenger_id: str,
        passenger_name: str
    ) -> DatabaseResult[SessionResponse]:
        passenger = SessionPassenger(user_id=passenger_id, user_name=passenger_name)
        return await self.sessions.apply(
            session_id,
            lambda s: {"carpool": _dump(logistics.with_passenger(s.carpool, driver_id, passenger))},
            "join carpool"
        )

    async def leave_carpool(self, session_id: str, user_id: str) -> DatabaseResult[SessionResponse]:
        return await self.sessions.apply(
            session_id,
            lambda s: {"carpool": _dump(logistics.without_carpool_user(s.carpool, user_id))},
            "leave carpool"
        )

    # Host-only fields

    async def _set_host_field(
        self,
        session_id: str,
        acting_user_id: str,
        field: str,
        value,
        operation: str
    ) -> DatabaseResult[SessionResponse]:
        def derive(session: SessionResponse):
            _require_host(session, acting_user_id)
            return {field: value}

        return await self.sessions.apply(session_id, derive, operation)

    async def set_host_notes(self, session_id: str, acting_user_id: str, notes: str) -> DatabaseResult[SessionResponse]:
        return await self._set_host_field(session_id, acting_user_id, "host_notes", notes, "set host notes")

    async def set_secret_notes(self, session_id: str, acting_user_id: str, notes: str) -> DatabaseResult[SessionResponse]:
        return await self._set_host_field(session_id, acting_user_id, "secret_notes", notes, "set secret notes")

    async def set_external_availability(
        self,
        session_id: str,
        acting_user_id: str,
        availability: str
    ) -> DatabaseResult[SessionResponse]:
        return await self._set_host_field(
            session_id, acting_user_id, "external_availability", availability, "set external availability"
        )

    async def set_confirmation(
        self,
        session_id: str,
        acting_user_id: str,
        is_confirmed: Optional[bool] = None
    ) -> DatabaseResult[SessionResponse]:
        """Confirm or unconfirm a session; None flips the current state"""
        def derive(session: SessionResponse):
            _require_host(session, acting_user_id)
            target = (not session.is_confirmed) if is_confirmed is None else is_confirmed
            return {"is_confirmed": target}

        result = await self.sessions.apply(session_id, derive, "set confirmation")
        if result.success:
            logger.info(f"Session {session_id} confirmed={result.data.is_confirmed}")
        return result

    async def toggle_confirmation(self, session_id: str, acting_user_id: str) -> DatabaseResult[SessionResponse]:
        return await self.set_confirmation(session_id, acting_user_id)
