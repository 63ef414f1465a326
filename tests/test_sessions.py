from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import DatabaseException, ErrorCode
from app.modules.sessions.schemas import SessionCreate, SessionFilter, SessionUpdate


def _days(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


async def _create(sessions, group, days, **fields):
    return (await sessions.create_session(SessionCreate(group_id=group.id, session_date=_days(days), **fields))).data


async def test_create_session_snapshots_group_and_applies_defaults(sessions, group, host):
    session = await _create(sessions, group, 7, host_notes="Bring dice", is_confirmed=False)

    assert session.group_id == group.id
    assert session.group_name == "Test Group"
    assert session.host_id == host.id
    assert session.host_name == "game_master"
    assert session.is_confirmed is False
    assert session.host_notes == "Bring dice"
    assert session.secret_notes == ""
    assert session.external_availability == ""
    assert session.available_users == []
    assert session.snacks == []
    assert session.carpool == []
    assert session.version == 1


async def test_create_session_for_unknown_group(sessions):
    result = await sessions.create_session(SessionCreate(group_id="groups-404", session_date=_days(1)))

    assert result.error.code == ErrorCode.GROUP_NOT_FOUND


async def test_group_name_snapshot_is_not_rewritten(sessions, store, group, session):
    store.collections["groups"][group.id]["name"] = "Renamed Table"

    fetched = (await sessions.get_session_by_id(session.id)).data

    assert fetched.group_name == "Test Group"


async def test_get_missing_session(sessions):
    assert (await sessions.get_session_by_id("sessions-404")).error.code == ErrorCode.SESSION_NOT_FOUND


async def test_update_session_writes_only_present_fields(sessions, session):
    result = await sessions.update_session(session.id, SessionUpdate(host_notes="", is_confirmed=None))

    assert result.success
    assert result.data.host_notes == ""
    assert result.data.is_confirmed is False
    assert result.data.session_date == session.session_date
    assert result.data.version == session.version + 1
    assert result.data.updated_at >= session.updated_at


async def test_update_missing_session(sessions):
    result = await sessions.update_session("sessions-404", SessionUpdate(host_notes="x"))

    assert result.error.code == ErrorCode.SESSION_NOT_FOUND


async def test_delete_session(sessions, session):
    assert (await sessions.delete_session(session.id)).data is True
    assert (await sessions.get_session_by_id(session.id)).error.code == ErrorCode.SESSION_NOT_FOUND
    assert (await sessions.delete_session(session.id)).error.code == ErrorCode.SESSION_NOT_FOUND


async def test_group_sessions_are_newest_first(sessions, group):
    middle = await _create(sessions, group, 7)
    earliest = await _create(sessions, group, 1)
    latest = await _create(sessions, group, 14)

    result = await sessions.get_group_sessions(group.id)

    assert [s.id for s in result.data] == [latest.id, middle.id, earliest.id]


async def test_group_without_sessions_returns_empty_list(sessions, group):
    assert (await sessions.get_group_sessions(group.id)).data == []


async def test_find_sessions_by_confirmation_and_date_window(sessions, group):
    soon = await _create(sessions, group, 2, is_confirmed=True)
    await _create(sessions, group, 3)
    await _create(sessions, group, 30, is_confirmed=True)

    confirmed_soon = await sessions.find_sessions(SessionFilter(
        group_id=group.id, is_confirmed=True, date_from=_days(1), date_to=_days(10)
    ))

    assert [s.id for s in confirmed_soon.data] == [soon.id]


async def test_session_history_lists_past_sessions_with_usernames(sessions, mutations, users, store, group, host):
    past = await _create(sessions, group, 7)
    await _create(sessions, group, 30)
    player = (await users.create_user("nora_necromancer")).data
    await mutations.confirm_availability(past.id, host.id)
    await mutations.confirm_availability(past.id, player.id)
    await mutations.confirm_availability(past.id, "users-deleted")

    result = await sessions.get_session_history(group.id, before=_days(10))

    assert [s.id for s in result.data] == [past.id]
    assert result.data[0].available_players == ["game_master", "nora_necromancer"]


async def test_concurrent_write_is_retried_against_fresh_state(sessions, mutations, store, session, host):
    writes = []

    async def interleave(collection, doc_id):
        if not writes:
            writes.append(doc_id)
            doc = store.collections[collection][doc_id]
            doc["available_users"] = ["users-rival"]
            doc["version"] += 1

    store.before_update = interleave

    result = await mutations.confirm_availability(session.id, host.id)

    assert result.success
    assert result.data.available_users == ["users-rival", host.id]
    assert result.data.version == session.version + 2


async def test_writes_give_up_after_repeated_conflicts(sessions, mutations, store, session, host):
    async def always_interleave(collection, doc_id):
        store.collections[collection][doc_id]["version"] += 1

    store.before_update = always_interleave

    result = await mutations.confirm_availability(session.id, host.id)

    assert result.error.code == ErrorCode.CONCURRENT_MODIFICATION
    assert store.collections["sessions"][session.id]["available_users"] == []


async def test_stream_emits_sorted_snapshots_on_every_change(sessions, mutations, group, host):
    first = await _create(sessions, group, 7)
    stream = sessions.stream_group_sessions(group.id)

    try:
        assert [s.id for s in await anext(stream)] == [first.id]

        later = await _create(sessions, group, 14)
        assert [s.id for s in await anext(stream)] == [later.id, first.id]

        await mutations.confirm_availability(first.id, host.id)
        snapshot = await anext(stream)
        assert [s.id for s in snapshot] == [later.id, first.id]
        assert snapshot[1].available_users == [host.id]
    finally:
        await stream.aclose()


async def test_stream_of_empty_group_starts_with_empty_list(sessions, group):
    stream = sessions.stream_group_sessions(group.id)
    try:
        assert await anext(stream) == []
    finally:
        await stream.aclose()


async def test_stream_failure_reaches_consumer_as_database_exception(sessions, store, group):
    async def broken_watch(collection, equals=None):
        yield {"eventType": "SUBSCRIBED"}
        raise ConnectionError("socket closed")

    store.watch = broken_watch
    stream = sessions.stream_group_sessions(group.id)

    assert await anext(stream) == []
    with pytest.raises(DatabaseException) as exc_info:
        await anext(stream)
    assert exc_info.value.code == ErrorCode.UNKNOWN_ERROR
