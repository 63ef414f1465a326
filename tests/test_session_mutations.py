import pytest

from app.core.errors import ErrorCode


@pytest.fixture
async def riders(users):
    return [(await users.create_user(name)).data for name in ("ava_archer", "ben_barbarian", "cal_cleric")]


async def test_confirm_availability_is_idempotent(mutations, session, host):
    await mutations.confirm_availability(session.id, host.id)
    result = await mutations.confirm_availability(session.id, host.id)

    assert result.data.available_users == [host.id]


async def test_availability_keeps_confirmation_order(mutations, session, riders):
    ava, ben, _ = riders

    await mutations.confirm_availability(session.id, ava.id)
    both = await mutations.confirm_availability(session.id, ben.id)
    remaining = await mutations.remove_availability(session.id, ava.id)

    assert both.data.available_users == [ava.id, ben.id]
    assert remaining.data.available_users == [ben.id]


async def test_remove_availability_of_absent_user_is_a_no_op(mutations, session, host):
    await mutations.confirm_availability(session.id, host.id)

    result = await mutations.remove_availability(session.id, "users-absent")

    assert result.success
    assert result.data.available_users == [host.id]
    assert (await mutations.remove_availability(session.id, host.id)).data.available_users == []


async def test_mutations_on_missing_session(mutations):
    assert (await mutations.confirm_availability("sessions-404", "u")).error.code == ErrorCode.SESSION_NOT_FOUND
    assert (await mutations.add_snack("sessions-404", "u", "U", "chips")).error.code == ErrorCode.SESSION_NOT_FOUND
    assert (await mutations.leave_carpool("sessions-404", "u")).error.code == ErrorCode.SESSION_NOT_FOUND


async def test_add_snack_replaces_previous_snack_of_same_user(mutations, session, riders):
    ava, ben, _ = riders
    await mutations.add_snack(session.id, ava.id, ava.username, "Chips")
    await mutations.add_snack(session.id, ben.id, ben.username, "Soda")

    result = await mutations.add_snack(session.id, ava.id, ava.username, "Pretzels")

    assert [(s.user_id, s.snack_description) for s in result.data.snacks] == [
        (ben.id, "Soda"),
        (ava.id, "Pretzels"),
    ]


async def test_remove_snack(mutations, session, riders):
    ava = riders[0]
    await mutations.add_snack(session.id, ava.id, ava.username, "Chips")

    result = await mutations.remove_snack(session.id, ava.id)

    assert result.data.snacks == []


async def test_full_carpool_rejects_additional_passenger(mutations, store, session, riders):
    ava, ben, cal = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 1)
    assert (await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)).success
    before = store.collections["sessions"][session.id]["carpool"]

    result = await mutations.join_carpool(session.id, ava.id, cal.id, cal.username)

    assert result.error.code == ErrorCode.CARPOOL_FULL
    assert store.collections["sessions"][session.id]["carpool"] == before
    assert [p.user_id for p in (await mutations.sessions.get_session_by_id(session.id)).data.carpool[0].passengers] == [ben.id]


async def test_rejoining_own_carpool_does_not_need_a_free_seat(mutations, session, riders):
    ava, ben, _ = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 1)
    await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    result = await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    assert result.success
    assert [p.user_id for p in result.data.carpool[0].passengers] == [ben.id]


async def test_switching_carpools_keeps_a_single_seat(mutations, session, riders, host):
    ava, ben, cal = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 3)
    await mutations.add_carpool(session.id, ben.id, ben.username, 3)
    await mutations.join_carpool(session.id, ava.id, cal.id, cal.username)

    result = await mutations.join_carpool(session.id, ben.id, cal.id, cal.username)

    by_driver = {c.driver_id: [p.user_id for p in c.passengers] for c in result.data.carpool}
    assert by_driver == {ava.id: [], ben.id: [cal.id]}


async def test_join_unknown_carpool(mutations, session, riders):
    ava, ben, _ = riders

    result = await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    assert result.error.code == ErrorCode.CARPOOL_NOT_FOUND


async def test_driver_without_passengers_can_take_a_seat(mutations, session, riders):
    ava, ben, _ = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 2)
    await mutations.add_carpool(session.id, ben.id, ben.username, 2)

    result = await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    assert result.success
    by_driver = {c.driver_id: [p.user_id for p in c.passengers] for c in result.data.carpool}
    assert by_driver == {ava.id: [ben.id], ben.id: []}


async def test_driver_with_passengers_cannot_take_a_seat(mutations, store, session, riders):
    ava, ben, cal = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 2)
    await mutations.add_carpool(session.id, ben.id, ben.username, 2)
    await mutations.join_carpool(session.id, ben.id, cal.id, cal.username)
    before = store.collections["sessions"][session.id]["carpool"]

    result = await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    assert result.error.code == ErrorCode.CARPOOL_CONFLICT
    assert store.collections["sessions"][session.id]["carpool"] == before


async def test_seated_driver_cannot_take_passengers(mutations, session, riders):
    ava, ben, cal = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 2)
    await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    offered = await mutations.add_carpool(session.id, ben.id, ben.username, 4)
    result = await mutations.join_carpool(session.id, ben.id, cal.id, cal.username)

    by_driver = {c.driver_id: [p.user_id for p in c.passengers] for c in offered.data.carpool}
    assert by_driver == {ava.id: [ben.id], ben.id: []}
    assert result.error.code == ErrorCode.CARPOOL_CONFLICT


async def test_replacing_a_carpool_keeps_one_per_driver(mutations, session, riders):
    ava, ben, _ = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 2)
    await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    result = await mutations.add_carpool(session.id, ava.id, ava.username, 5)

    assert len(result.data.carpool) == 1
    assert result.data.carpool[0].capacity == 5
    assert result.data.carpool[0].passengers == []


@pytest.mark.parametrize("capacity", [0, -1, 11, 2.5, True])
async def test_invalid_capacity_is_rejected_without_writing(mutations, store, session, riders, capacity):
    ava = riders[0]

    result = await mutations.add_carpool(session.id, ava.id, ava.username, capacity)

    assert result.error.code == ErrorCode.INVALID_CAPACITY
    assert store.collections["sessions"][session.id]["version"] == session.version


async def test_leave_carpool_as_driver_removes_the_carpool(mutations, session, riders):
    ava, ben, cal = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 2)
    await mutations.add_carpool(session.id, cal.id, cal.username, 2)
    await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    result = await mutations.leave_carpool(session.id, ava.id)

    assert [c.driver_id for c in result.data.carpool] == [cal.id]


async def test_leave_carpool_as_passenger_frees_the_seat(mutations, session, riders):
    ava, ben, _ = riders
    await mutations.add_carpool(session.id, ava.id, ava.username, 2)
    await mutations.join_carpool(session.id, ava.id, ben.id, ben.username)

    result = await mutations.leave_carpool(session.id, ben.id)

    assert result.data.carpool[0].driver_id == ava.id
    assert result.data.carpool[0].passengers == []


async def test_host_fields_require_the_host(mutations, store, session, host, riders):
    ava = riders[0]

    for attempt in (
        mutations.set_host_notes(session.id, ava.id, "hijacked"),
        mutations.set_secret_notes(session.id, ava.id, "spoilers"),
        mutations.set_external_availability(session.id, ava.id, "never"),
        mutations.set_confirmation(session.id, ava.id, True),
    ):
        result = await attempt
        assert result.error.code == ErrorCode.NOT_HOST

    stored = store.collections["sessions"][session.id]
    assert stored["host_notes"] == "Bring dice"
    assert stored["version"] == session.version


async def test_host_can_set_notes_and_availability(mutations, session, host):
    await mutations.set_host_notes(session.id, host.id, "Session zero")
    await mutations.set_secret_notes(session.id, host.id, "The innkeeper is a dragon")
    result = await mutations.set_external_availability(session.id, host.id, "Mike: maybe")

    assert result.data.host_notes == "Session zero"
    assert result.data.secret_notes == "The innkeeper is a dragon"
    assert result.data.external_availability == "Mike: maybe"


async def test_set_and_toggle_confirmation(mutations, session, host):
    assert (await mutations.set_confirmation(session.id, host.id, True)).data.is_confirmed is True
    assert (await mutations.set_confirmation(session.id, host.id, True)).data.is_confirmed is True
    assert (await mutations.toggle_confirmation(session.id, host.id)).data.is_confirmed is False
    assert (await mutations.toggle_confirmation(session.id, host.id)).data.is_confirmed is True
