from pydantic import BaseModel
from typing import Any, Generic, Literal, Optional, TypeVar, Union
import logging

from app.core.errors import ErrorCode, describe_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseError(BaseModel):
    code: ErrorCode
    message: str
    details: Optional[Any] = None


class Success(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: T


class Failure(BaseModel):
    success: Literal[False] = False
    error: DatabaseError


DatabaseResult = Union[Success[T], Failure]


def ok(data: T) -> Success[T]:
    return Success(data=data)


def fail(code: ErrorCode, message: str, details: Optional[Any] = None) -> Failure:
    return Failure(error=DatabaseError(code=code, message=message, details=details))


def unknown_error(operation: str, exc: Exception) -> Failure:
    """Wrap an unexpected transport failure, keeping the original for diagnostics."""
    logger.error(f"Unexpected error in {operation}: {exc}")
    return fail(
        ErrorCode.UNKNOWN_ERROR,
        f"Unexpected error while trying to {operation}",
        details=describe_exception(exc),
    )
