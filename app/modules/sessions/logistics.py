"""
Pure transforms over a session's nested collections.

Each function takes the current value of one collection and returns the new
value without touching the input. Business-rule violations raise
MutationRejected so the caller can report them without writing anything.
"""

from typing import List

from app.core.errors import ErrorCode, MutationRejected
from app.modules.sessions.schemas import (
    SessionCarpool, SessionPassenger, SessionSnack, check_capacity
)


def with_available_user(available_users: List[str], user_id: str) -> List[str]:
    if user_id in available_users:
        return list(available_users)
    return [*available_users, user_id]


def without_available_user(available_users: List[str], user_id: str) -> List[str]:
    return [u for u in available_users if u != user_id]


def with_snack(snacks: List[SessionSnack], snack: SessionSnack) -> List[SessionSnack]:
    """Upsert: a user's new snack replaces the previous one and moves to the end"""
    return [s for s in snacks if s.user_id != snack.user_id] + [snack]


def without_snack(snacks: List[SessionSnack], user_id: str) -> List[SessionSnack]:
    return [s for s in snacks if s.user_id != user_id]


def _vacate_seat(carpool: SessionCarpool, user_id: str) -> SessionCarpool:
    return carpool.model_copy(
        update={"passengers": [p for p in carpool.passengers if p.user_id != user_id]}
    )


def with_carpool(
    carpools: List[SessionCarpool],
    driver_id: str,
    driver_name: str,
    capacity: int
) -> List[SessionCarpool]:
    """
    Upsert by driver. A replacement offer starts empty, so a driver keeps any
    passenger seat they hold until someone rides with them.
    """
    try:
        capacity = check_capacity(capacity)
    except ValueError as e:
        raise MutationRejected(ErrorCode.INVALID_CAPACITY, str(e))

    remaining = [c for c in carpools if c.driver_id != driver_id]
    offer = SessionCarpool(driver_id=driver_id, driver_name=driver_name, capacity=capacity)
    return remaining + [offer]


def with_passenger(
    carpools: List[SessionCarpool],
    driver_id: str,
    passenger: SessionPassenger
) -> List[SessionCarpool]:
    """Seat a passenger in the driver's carpool, releasing any other seat they held"""
    target = next((c for c in carpools if c.driver_id == driver_id), None)
    if target is None:
        raise MutationRejected(ErrorCode.CARPOOL_NOT_FOUND, "Carpool not found for this driver")

    if passenger.user_id == driver_id:
        raise MutationRejected(ErrorCode.CARPOOL_CONFLICT, "Drivers cannot ride in their own carpool")
    if any(c.driver_id == passenger.user_id and c.passengers for c in carpools):
        raise MutationRejected(
            ErrorCode.CARPOOL_CONFLICT,
            "Drivers with passengers cannot take a passenger seat in the same session"
        )
    if any(p.user_id == driver_id for c in carpools for p in c.passengers):
        raise MutationRejected(
            ErrorCode.CARPOOL_CONFLICT,
            "This driver is riding with someone else in this session"
        )

    others = [p for p in target.passengers if p.user_id != passenger.user_id]
    if len(others) >= target.capacity:
        raise MutationRejected(ErrorCode.CARPOOL_FULL, "Carpool is at full capacity")

    updated = []
    for carpool in carpools:
        carpool = _vacate_seat(carpool, passenger.user_id)
        if carpool.driver_id == driver_id:
            carpool = carpool.model_copy(update={"passengers": [*carpool.passengers, passenger]})
        updated.append(carpool)
    return updated


def without_carpool_user(carpools: List[SessionCarpool], user_id: str) -> List[SessionCarpool]:
    """Drivers lose their whole carpool; passengers lose their seat"""
    return [
        _vacate_seat(c, user_id)
        for c in carpools
        if c.driver_id != user_id
    ]
