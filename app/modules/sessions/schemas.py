from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

CARPOOL_MIN_CAPACITY = 1
CARPOOL_MAX_CAPACITY = 10


def check_capacity(capacity: int) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise ValueError("Carpool capacity must be a whole number")
    if not CARPOOL_MIN_CAPACITY <= capacity <= CARPOOL_MAX_CAPACITY:
        raise ValueError(
            f"Carpool capacity must be between {CARPOOL_MIN_CAPACITY} and {CARPOOL_MAX_CAPACITY}"
        )
    return capacity


class SessionPassenger(BaseModel):
    user_id: str
    user_name: str


class SessionSnack(BaseModel):
    user_id: str
    user_name: str
    snack_description: str


class SessionCarpool(BaseModel):
    driver_id: str
    driver_name: str
    capacity: int
    passengers: List[SessionPassenger] = Field(default_factory=list)

    @field_validator("capacity", mode="before")
    @classmethod
    def validate_capacity(cls, value):
        return check_capacity(value)

    @model_validator(mode="after")
    def validate_seats(self):
        ids = [p.user_id for p in self.passengers]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Passenger listed twice in carpool of {self.driver_id}")
        if len(ids) > self.capacity:
            raise ValueError(f"Carpool of {self.driver_id} has more passengers than seats")
        return self


class SessionCollections(BaseModel):
    """Invariants shared by every model carrying a session's nested collections"""

    @field_validator("available_users", check_fields=False)
    @classmethod
    def validate_available_users(cls, value):
        if value is not None and len(set(value)) != len(value):
            raise ValueError("A user can only confirm availability once")
        return value

    @field_validator("snacks", check_fields=False)
    @classmethod
    def validate_snacks(cls, value):
        if value is not None:
            ids = [s.user_id for s in value]
            if len(set(ids)) != len(ids):
                raise ValueError("Only one snack per user")
        return value

    @field_validator("carpool", check_fields=False)
    @classmethod
    def validate_carpool(cls, value):
        if value is None:
            return value
        drivers = [c.driver_id for c in value]
        if len(set(drivers)) != len(drivers):
            raise ValueError("Only one carpool per driver")
        seated = [p.user_id for c in value for p in c.passengers]
        if len(set(seated)) != len(seated):
            raise ValueError("A passenger can only hold one seat per session")
        busy_drivers = {c.driver_id for c in value if c.passengers}
        if set(seated) & busy_drivers:
            raise ValueError("A driver with passengers cannot also be a passenger")
        return value


class SessionCreate(SessionCollections):
    group_id: str
    session_date: datetime
    host_notes: Optional[str] = None
    secret_notes: Optional[str] = None
    external_availability: Optional[str] = None
    is_confirmed: Optional[bool] = None
    available_users: Optional[List[str]] = None
    snacks: Optional[List[SessionSnack]] = None
    carpool: Optional[List[SessionCarpool]] = None


class SessionUpdate(SessionCollections):
    """Only fields that are set (and not None) are written"""
    is_confirmed: Optional[bool] = None
    session_date: Optional[datetime] = None
    host_notes: Optional[str] = None
    secret_notes: Optional[str] = None
    external_availability: Optional[str] = None
    available_users: Optional[List[str]] = None
    snacks: Optional[List[SessionSnack]] = None
    carpool: Optional[List[SessionCarpool]] = None


class SessionResponse(SessionCollections):
    id: str
    group_id: str
    group_name: str  # snapshot taken when the session was created
    host_id: str
    host_name: str  # snapshot taken when the session was created
    is_confirmed: bool = False
    session_date: datetime
    host_notes: str = ""
    secret_notes: str = ""
    external_availability: str = ""
    available_users: List[str] = Field(default_factory=list)
    snacks: List[SessionSnack] = Field(default_factory=list)
    carpool: List[SessionCarpool] = Field(default_factory=list)
    version: int = 1
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionFilter(BaseModel):
    group_id: Optional[str] = None
    host_id: Optional[str] = None
    is_confirmed: Optional[bool] = None
    date_from: Optional[datetime] = None  # inclusive
    date_to: Optional[datetime] = None  # exclusive


class SessionSummary(BaseModel):
    id: str
    session_date: datetime
    is_confirmed: bool
    available_players: List[str]  # usernames


# Request bodies for the HTTP surface

class SnackCreate(BaseModel):
    snack_description: str


class CarpoolCreate(BaseModel):
    capacity: int


class CarpoolJoin(BaseModel):
    driver_id: str


class TextFieldUpdate(BaseModel):
    value: str


class ConfirmationUpdate(BaseModel):
    is_confirmed: Optional[bool] = None  # None toggles
